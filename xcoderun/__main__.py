from xcoderun import app

app(prog_name="xcoderun")
