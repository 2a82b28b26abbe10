from statspine.cli.app import app

app()
