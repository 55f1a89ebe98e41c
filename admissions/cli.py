"""CLI tools for admissions administration."""

import click
from sqlalchemy.exc import SQLAlchemyError

from admissions.core.security import create_session_token
from admissions.db.enums import Role
from admissions.db.models import Language, User
from admissions.db.session import SessionLocal


@click.group()
def cli():
    """Admissions CLI tools."""
    pass


@cli.command()
@click.option("--email", required=True, help="Staff email address")
@click.option("--name", required=True, help="Display name")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.COUNSELLOR.value,
    show_default=True,
)
def create_staff(email: str, name: str, role: str):
    """
    Create a staff account.

    Example:
        admissions-cli create-staff --email admin@langzy.com --name "Admin" --role admin
    """
    db = SessionLocal()
    try:
        email = email.strip().lower()
        if db.query(User).filter(User.email == email).first():
            click.echo(f"❌ User with email '{email}' already exists")
            return

        user = User(email=email, name=name.strip(), role=role)
        db.add(user)
        db.commit()

        click.echo(f"✓ Created {role}: {name}")
        click.echo(f"  ID: {user.id}")
    except SQLAlchemyError as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="Email of an existing active user")
def issue_token(email: str):
    """
    Print a session token for an existing user.

    Useful for scripting against the API from a terminal.
    """
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user or not user.is_active:
            click.echo(f"❌ No active user with email '{email}'")
            return
        click.echo(create_session_token(user.id, user.role, user.token_version))
    finally:
        db.close()


@cli.command()
@click.option("--name", required=True, help="Language name, e.g. English")
@click.option("--code", required=True, help="Language code, e.g. en")
@click.option("--flag", default=None, help="Flag image URL or emoji")
def add_language(name: str, code: str, flag: str | None):
    """Add a language to the catalog used by language-specific forms."""
    db = SessionLocal()
    try:
        code = code.strip().lower()
        if db.query(Language).filter(Language.code == code).first():
            click.echo(f"❌ Language with code '{code}' already exists")
            return

        language = Language(name=name.strip(), code=code, flag=flag)
        db.add(language)
        db.commit()
        click.echo(f"✓ Created language: {name} ({code})")
        click.echo(f"  ID: {language.id}")
    except SQLAlchemyError as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
