"""
Command-line administration of appraiser accounts.

.. code-block:: bash

   $ appraiser-users create-user --email joe@bloggs.com --name Joe \
         --phone 0912345678 --role paid
   Password:
   $ appraiser-users extend joe@bloggs.com --plan yearly
   $ appraiser-users backup > backup.json

"""

from typing import Any, Awaitable, Callable
import asyncio
import json

import click

from . import config
from .app_logging import setup_logger
from .backends import create_backend
from .backup import create_backup, members_csv, restore_backup
from .domain import Result, Role, User
from .exceptions import AccountsError
from .identity import IdentityService
from .storage import get_storage
from .subscription import PLANS, plan_days


def _run(operation: Callable[[IdentityService], Awaitable[Any]]) -> Any:
    async def _main() -> Any:
        service = IdentityService(await create_backend())
        await service.start()
        try:
            return await operation(service)
        finally:
            service.close()
    return asyncio.run(_main())


def _report(result: Result) -> None:
    if not result.success:
        detail = f' ({result.detail})' if result.detail else ''
        raise click.ClickException(f'{result.key}{detail}')
    click.echo(result.key)


@click.group()
@click.option('--log-level', default=config.LOGLEVEL, show_default=True)
def cli(log_level: str) -> None:
    """Manage appraiser users."""
    setup_logger(log_level)


@cli.command('create-user')
@click.option('--email', prompt='Email address')
@click.option('--password', prompt=True, hide_input=True,
              confirmation_prompt=True)
@click.option('--name', prompt='Name')
@click.option('--phone', prompt='Phone')
@click.option('--role', type=click.Choice([r.value for r in Role]),
              default=Role.GENERAL.value, show_default=True)
def create_user(email: str, password: str, name: str, phone: str,
                role: str) -> None:
    """Create a user. Local mode only."""
    user = User(email=email, password=password, name=name, phone=phone,
                role=role)
    _report(_run(lambda service: service.add_user(user)))


@cli.command('list-users')
def list_users() -> None:
    """List all users."""
    result = _run(lambda service: service.fetch_all())
    if not result.success:
        _report(result)
    for user in result.data:
        expiry = user.subscription_expiry
        click.echo('\t'.join([
            user.email, user.role.value, user.name or '', user.phone or '',
            expiry.date().isoformat() if expiry else '-',
        ]))


@cli.command()
@click.argument('email')
@click.option('--days', type=int, help='Number of days to add.')
@click.option('--plan', type=click.Choice(sorted(PLANS)),
              help='Add the days bought by a plan.')
def extend(email: str, days: int, plan: str) -> None:
    """Extend a user's subscription and make them a paid member."""
    if (days is None) == (plan is None):
        raise click.UsageError('Give exactly one of --days and --plan')
    if plan is not None:
        days = plan_days(plan)
    _report(_run(lambda service: service.extend_subscription(email, days)))


@cli.command()
@click.argument('email')
@click.confirmation_option(prompt='Delete this user?')
def delete(email: str) -> None:
    """Delete a user."""
    _report(_run(lambda service: service.delete_user(email)))


@cli.command()
@click.option('--output', type=click.File('w', encoding='utf-8'),
              default='-')
def backup(output: Any) -> None:
    """Write a backup of local storage as JSON."""
    json.dump(create_backup(get_storage()), output, ensure_ascii=False,
              indent=2)


@cli.command()
@click.argument('source', type=click.File('r', encoding='utf-8'))
def restore(source: Any) -> None:
    """Restore local storage from a backup."""
    try:
        restore_backup(get_storage(), json.load(source))
    except ValueError as e:
        raise click.ClickException(f'restoreFailed ({e})')
    except AccountsError as e:
        raise click.ClickException(f'{e.key} ({e})')
    click.echo('restoreSuccess')


@cli.command('export-csv')
@click.option('--output', type=click.File('w', encoding='utf-8'),
              default='-')
def export_csv(output: Any) -> None:
    """Export the member list as CSV."""
    result = _run(lambda service: service.fetch_all())
    if not result.success:
        _report(result)
    output.write(members_csv(result.data))


@cli.command()
@click.option('--port', type=int, default=config.RELAY_PORT,
              show_default=True)
def relay(port: int) -> None:
    """Run the mail relay."""
    from ..mail.relay import create_app
    create_app().run(port=port)


if __name__ == '__main__':
    cli()
