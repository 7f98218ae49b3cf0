from formflow.cli import app

app()
