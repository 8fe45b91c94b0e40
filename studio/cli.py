"""
Flask CLI commands:

    flask init-db        create tables and default site settings
    flask create-admin   create an admin account from the shell
"""
import click

from studio import db
from studio.errors import APIError


def register_commands(app):

    @app.cli.command('init-db')
    def init_db():
        """Create all tables and upsert default site settings (idempotent)."""
        from studio.models import SiteSetting
        from studio.models.content import DEFAULT_SETTINGS

        click.echo('Creating database tables...')
        db.create_all()
        for key, value, category, description in DEFAULT_SETTINGS:
            if SiteSetting.query.filter_by(key=key).first() is None:
                SiteSetting.upsert(key, value, category=category, description=description)
                click.echo('  -> setting {}'.format(key))
        db.session.commit()
        click.echo('Database ready.')

    @app.cli.command('create-admin')
    @click.option('--username', prompt=True)
    @click.option('--email', prompt=True)
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
    @click.option('--role', default='admin', type=click.Choice(['admin', 'superadmin']))
    def create_admin(username, email, password, role):
        """Create an admin account."""
        from studio.services import auth_service

        try:
            admin = auth_service.create_admin(username, email, password, role)
        except APIError as e:
            raise click.ClickException(e.message)
        click.echo('Admin {} created (id {}).'.format(admin.username, admin.id))
