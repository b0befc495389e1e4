from wakemate.cli import app

app(prog_name="wakemate")
