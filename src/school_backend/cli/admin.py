import click

from school_backend.database import get_db
from school_backend.services.users import create_admin_user
from school_backend.settings import settings


@click.command()
@click.option("--email", "-e", "email", default=lambda: settings.ADMIN_EMAIL, prompt=True)
@click.option("--password", "-p", "password", default=lambda: settings.ADMIN_PASSWORD, prompt=True, hide_input=True)
@click.option("--name", "-n", "name", default="Administrator")
def create_admin(email, password, name):
    """Create an administrator account"""

    if len(password) < 6:
        raise click.BadParameter("Password must be at least 6 characters long", param_hint="--password")

    with next(get_db()) as db:
        user = create_admin_user(db, email, password, name)

    click.echo(f"Administrator: {user.email} ({user.id})")
