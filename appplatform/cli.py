import asyncio
import dataclasses
import functools
import json
from typing import Any, Awaitable, Callable, Dict, Optional, TextIO

import aiohttp
import click
import yaml

from appplatform._cogs.clients import errors
from appplatform._cogs.configs import configuration
from appplatform._cogs.helpers import versions
from appplatform._cogs.structs import namespaces
from appplatform._core.engines import loggers
from appplatform._core.secrets import client as secrets_client
from appplatform._core.secrets import models


@dataclasses.dataclass()
class CLIControls:
    """ Controls, which are impossible to pass via CLI: e.g. in tests. """
    settings: Optional[configuration.ClientSettings] = None


class LogFormatParamType(click.Choice):

    def __init__(self) -> None:
        super().__init__(choices=[v.name.lower() for v in loggers.LogFormat])

    def convert(self, value: Any, param: Any, ctx: Any) -> loggers.LogFormat:
        name: str = super().convert(value, param, ctx)
        return loggers.LogFormat[name.upper()]


def logging_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """ A decorator to configure logging in all commands the same way."""
    @click.option('-v', '--verbose', is_flag=True)
    @click.option('-d', '--debug', is_flag=True)
    @click.option('-q', '--quiet', is_flag=True)
    @click.option('--log-format', type=LogFormatParamType(), default='full')
    @click.option('--log-refkey', type=str)
    @click.option('--log-prefix/--no-log-prefix', default=None)
    @functools.wraps(fn)  # to preserve other opts/args
    def wrapper(verbose: bool, quiet: bool, debug: bool,
                log_format: loggers.LogFormat = loggers.LogFormat.FULL,
                log_prefix: Optional[bool] = False,
                log_refkey: Optional[str] = None,
                *args: Any, **kwargs: Any) -> Any:
        loggers.configure(debug=debug, verbose=verbose, quiet=quiet,
                          log_format=log_format, log_refkey=log_refkey, log_prefix=log_prefix)
        return fn(*args, **kwargs)

    return wrapper


def tenant_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """ A decorator to resolve the namespace from the tenant ids, unless given explicitly. """
    @click.option('--org-id', type=int, envvar='APPPLATFORM_ORG_ID')
    @click.option('--stack-id', type=int, envvar='APPPLATFORM_STACK_ID')
    @click.option('-n', '--namespace', type=str, envvar='APPPLATFORM_NAMESPACE')
    @functools.wraps(fn)  # to preserve other opts/args
    def wrapper(org_id: Optional[int], stack_id: Optional[int], namespace: Optional[str],
                *args: Any, **kwargs: Any) -> Any:
        if not namespace:
            try:
                namespace = namespaces.namespace_for_client(org_id=org_id, stack_id=stack_id)
            except (TypeError, ValueError) as e:  # incl. NamespaceError
                raise click.UsageError(str(e))
        return fn(*args, namespace=namespace, **kwargs)

    return wrapper


def connection_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """ A decorator to build the secrets client from the connection options. """
    @click.option('--url', type=str, required=True, envvar='APPPLATFORM_URL')
    @click.option('--token', type=str, envvar='APPPLATFORM_TOKEN')
    @click.option('--username', type=str, envvar='APPPLATFORM_USERNAME')
    @click.option('--password', type=str, envvar='APPPLATFORM_PASSWORD')
    @functools.wraps(fn)  # to preserve other opts/args
    def wrapper(url: str, token: Optional[str], username: Optional[str], password: Optional[str],
                *args: Any, **kwargs: Any) -> Any:
        controls = click.get_current_context().ensure_object(CLIControls)
        try:
            client = secrets_client.SecretsClient(
                url,
                token=token,
                basic_auth=aiohttp.BasicAuth(username, password or '') if username else None,
                settings=controls.settings,
                user_agent=f'appplatform/{versions.version or "unknown"}',
            )
        except errors.URLParseError as e:
            raise click.BadParameter(str(e), param_hint='--url')
        return fn(*args, client=client, **kwargs)

    return wrapper


output_options = click.option('-o', '--output', type=click.Choice(['yaml', 'json']), default='yaml')


def _run(
        client: secrets_client.SecretsClient,
        fn: Callable[[secrets_client.SecretsClient], Awaitable[Any]],
) -> Any:
    async def _main() -> Any:
        async with client:
            return await fn(client)

    try:
        return asyncio.run(_main())
    except errors.ClientError as e:
        raise click.ClickException(str(e))


def _load_manifest(file: TextIO, namespace: str) -> Dict[str, Any]:
    try:
        manifest = yaml.safe_load(file)  # JSON is also YAML.
    except yaml.YAMLError as e:
        raise click.BadParameter(f"Cannot parse the manifest: {e}", param_hint='--filename')
    if not isinstance(manifest, dict):
        raise click.BadParameter("The manifest must be an object.", param_hint='--filename')
    manifest.setdefault('metadata', {})['namespace'] = namespace
    return manifest


def _echo(obj: Any, output: str) -> None:
    if output == 'json':
        click.echo(json.dumps(obj, indent=2))
    else:
        click.echo(yaml.safe_dump(obj, sort_keys=False), nl=False)


@click.version_option(prog_name='appplatform')
@click.group(name='appplatform', context_settings=dict(
    auto_envvar_prefix='APPPLATFORM',
))
def main() -> None:
    pass


@main.command()
@logging_options
@click.option('--org-id', type=int)
@click.option('--stack-id', type=int)
def namespace(org_id: Optional[int], stack_id: Optional[int]) -> None:
    """ Print the namespace of a tenant: an organization or a cloud stack. """
    try:
        click.echo(namespaces.namespace_for_client(org_id=org_id, stack_id=stack_id))
    except (TypeError, ValueError) as e:  # incl. NamespaceError
        raise click.UsageError(str(e))


@main.group()
def keeper() -> None:
    """ Manage the keepers: the storages of the secure values. """


@keeper.command('list')
@logging_options
@connection_options
@tenant_options
@output_options
def keeper_list(client: secrets_client.SecretsClient, namespace: str, output: str) -> None:
    keepers = _run(client, lambda c: c.list_keepers(namespace))
    _echo([k.as_dict() for k in keepers], output)


@keeper.command('get')
@logging_options
@connection_options
@tenant_options
@output_options
@click.argument('name')
def keeper_get(client: secrets_client.SecretsClient, namespace: str, output: str, name: str) -> None:
    result = _run(client, lambda c: c.get_keeper(namespace, name))
    _echo(result.as_dict(), output)


@keeper.command('create')
@logging_options
@connection_options
@tenant_options
@output_options
@click.option('-f', '--filename', 'file', type=click.File('r'), required=True)
def keeper_create(client: secrets_client.SecretsClient, namespace: str, output: str, file: TextIO) -> None:
    obj = models.Keeper.from_dict(_load_manifest(file, namespace))
    result = _run(client, lambda c: c.create_keeper(namespace, obj))
    _echo(result.as_dict(), output)


@keeper.command('update')
@logging_options
@connection_options
@tenant_options
@output_options
@click.option('-f', '--filename', 'file', type=click.File('r'), required=True)
def keeper_update(client: secrets_client.SecretsClient, namespace: str, output: str, file: TextIO) -> None:
    obj = models.Keeper.from_dict(_load_manifest(file, namespace))
    if not obj.metadata.name:
        raise click.BadParameter("The manifest has no name.", param_hint='--filename')
    result = _run(client, lambda c: c.update_keeper(namespace, obj.metadata.name, obj))
    _echo(result.as_dict(), output)


@keeper.command('delete')
@logging_options
@connection_options
@tenant_options
@click.argument('name')
def keeper_delete(client: secrets_client.SecretsClient, namespace: str, name: str) -> None:
    _run(client, lambda c: c.delete_keeper(namespace, name))
    click.echo(f"Keeper {name!r} is deleted from {namespace!r}.")


@keeper.command('activate')
@logging_options
@connection_options
@tenant_options
@click.argument('name')
def keeper_activate(client: secrets_client.SecretsClient, namespace: str, name: str) -> None:
    _run(client, lambda c: c.activate_keeper(namespace, name))
    click.echo(f"Keeper {name!r} is activated in {namespace!r}.")


@main.group()
def securevalue() -> None:
    """ Manage the secure values: the secrets stored in the keepers. """


@securevalue.command('list')
@logging_options
@connection_options
@tenant_options
@output_options
def securevalue_list(client: secrets_client.SecretsClient, namespace: str, output: str) -> None:
    values = _run(client, lambda c: c.list_secure_values(namespace))
    _echo([v.as_dict() for v in values], output)


@securevalue.command('get')
@logging_options
@connection_options
@tenant_options
@output_options
@click.argument('name')
def securevalue_get(client: secrets_client.SecretsClient, namespace: str, output: str, name: str) -> None:
    result = _run(client, lambda c: c.get_secure_value(namespace, name))
    _echo(result.as_dict(), output)


@securevalue.command('create')
@logging_options
@connection_options
@tenant_options
@output_options
@click.option('-f', '--filename', 'file', type=click.File('r'), required=True)
def securevalue_create(client: secrets_client.SecretsClient, namespace: str, output: str, file: TextIO) -> None:
    obj = models.SecureValue.from_dict(_load_manifest(file, namespace))
    result = _run(client, lambda c: c.create_secure_value(namespace, obj))
    _echo(result.as_dict(), output)


@securevalue.command('update')
@logging_options
@connection_options
@tenant_options
@output_options
@click.option('-f', '--filename', 'file', type=click.File('r'), required=True)
def securevalue_update(client: secrets_client.SecretsClient, namespace: str, output: str, file: TextIO) -> None:
    obj = models.SecureValue.from_dict(_load_manifest(file, namespace))
    if not obj.metadata.name:
        raise click.BadParameter("The manifest has no name.", param_hint='--filename')
    result = _run(client, lambda c: c.update_secure_value(namespace, obj.metadata.name, obj))
    _echo(result.as_dict(), output)


@securevalue.command('delete')
@logging_options
@connection_options
@tenant_options
@click.argument('name')
def securevalue_delete(client: secrets_client.SecretsClient, namespace: str, name: str) -> None:
    _run(client, lambda c: c.delete_secure_value(namespace, name))
    click.echo(f"Secure value {name!r} is deleted from {namespace!r}.")
