# pyright: standard

"""xtlbackup: xtlbackup/endpoint/__init__.py."""

from ..core import naming
from .common import Endpoint
from .local import LocalEndpoint
from .ssh import SSHEndpoint


def source_endpoint(template, invoker, tools) -> LocalEndpoint:
    """Endpoint of the snapshot zone a path template names."""
    directory, prefix = naming.zone_spec(template)
    return LocalEndpoint(directory, invoker, tools, prefix=prefix)


def local_endpoint(template, invoker, tools) -> LocalEndpoint:
    """Endpoint of a local backup zone."""
    return LocalEndpoint(naming.zone_directory(template), invoker, tools, create=True)


def remote_endpoint(remote, invoker, tools, control_master=True) -> SSHEndpoint:
    """Endpoint of a remote backup zone, from a RemoteConfig."""
    return SSHEndpoint(
        naming.zone_directory(remote.path),
        invoker,
        tools,
        hostname=remote.host,
        username=remote.username,
        port=remote.port,
        identity_file=remote.identity_file,
        control_master=control_master,
    )


__all__ = [
    "Endpoint",
    "LocalEndpoint",
    "SSHEndpoint",
    "source_endpoint",
    "local_endpoint",
    "remote_endpoint",
]
