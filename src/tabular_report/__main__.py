from tabular_report import cli

cli.app()
