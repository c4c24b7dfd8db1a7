import click

from .admin import create_admin
from .db import init_db
from .serve import serve

@click.group()
def cli():
    pass

cli.add_command(init_db,"init-db")
cli.add_command(create_admin,"create-admin")
cli.add_command(serve,"serve")

if __name__ == '__main__':
    cli()
