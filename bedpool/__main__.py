from bedpool.cli import run

run()
