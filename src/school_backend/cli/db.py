import click

from school_backend.database import get_engine
from school_backend.model import Base


@click.command()
@click.option("--drop", is_flag=True, default=False, help="Drop all tables before creating them")
def init_db(drop: bool):
    """Create the database schema"""

    engine = get_engine()

    if drop:
        click.confirm(f"Drop every table of {engine.url.render_as_string(hide_password=True)}?", abort=True)
        Base.metadata.drop_all(engine)

    Base.metadata.create_all(engine)
    click.echo(f"Schema ready ({len(Base.metadata.tables)} tables)")
