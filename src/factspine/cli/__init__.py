"""``factspine`` command line (typer + rich)."""
