from dotstrap.main import cli

cli()
