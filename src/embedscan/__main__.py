from embedscan.cli import cli

cli()
