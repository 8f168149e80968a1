from postlint.main import cli

cli()
