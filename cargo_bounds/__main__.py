from cargo_bounds.cli import run

run()
