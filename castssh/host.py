"""Turn raw host tokens into fully resolved connection targets.

A token has the form ``[user[:password]@]host[:port]``. The host part may
be an alias from the user's ssh config, in which case its ``HostName``,
``User`` and ``Port`` entries are applied before the token's own user and
port, which always win.
"""
import logging
import os
import re
from urllib.parse import urlsplit, unquote

from paramiko.config import SSHConfig
from paramiko.ssh_exception import ConfigParseError

from .auth import get_auth_password
from .clients.native.single import SSHClient
from .exceptions import InvalidHostError, NoAuthMethodError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 22
DEFAULT_SSH_CONFIG = os.path.join("~", ".ssh", "config")

# characters a URL authority can never contain
_BAD_TOKEN_CHARS = re.compile(r'[\s"<>\\^`{|}]')


class HostToken:

    def __init__(self, hostname, port=None, user=None, password=None):
        self.hostname = hostname
        self.port = port
        self.user = user
        self.password = password


class ResolvedHost:
    """A connection target together with the client that owns its session.

    The client is created unconnected; it connects on the first command and
    is closed once, when the batch is done.
    """

    def __init__(self, user, hostname, port, timeout, auth_methods,
                 client_factory=SSHClient):
        self.user = user
        self.hostname = hostname
        self.port = port
        self.timeout = timeout
        self.auth_methods = auth_methods
        self.client = client_factory(self)

    @property
    def address(self):
        if ":" in self.hostname:
            return "[%s]:%d" % (self.hostname, self.port)
        return "%s:%d" % (self.hostname, self.port)

    def execute(self, command):
        return self.client.run_command(command)

    def close(self):
        self.client.disconnect()

    def __str__(self):
        return "%s@%s" % (self.user, self.address)

    def __repr__(self):
        return "{User:%s Host:%s Timeout:%s Auth:%s}" % (
            self.user, self.address, self.timeout, self.auth_methods)


def parse_host_token(token):
    """Parse ``[user[:password]@]host[:port]`` into a `HostToken`."""
    if not token or _BAD_TOKEN_CHARS.search(token):
        raise InvalidHostError(token)
    try:
        parts = urlsplit("ssh://" + token)
        port = parts.port
    except ValueError as ex:
        raise InvalidHostError(token) from ex

    userinfo, _, hostport = parts.netloc.rpartition("@")
    if hostport.startswith("["):
        hostname = hostport[1:hostport.find("]")]
    else:
        hostname = hostport.partition(":")[0]
    if not hostname or port == 0:
        raise InvalidHostError(token)

    user = password = None
    if userinfo:
        user, has_password, password = userinfo.partition(":")
        user = unquote(user)
        password = unquote(password) if has_password else None
    return HostToken(hostname, port, user or None, password)


def load_ssh_config(path=DEFAULT_SSH_CONFIG):
    """Alias configuration, or None when it cannot be read."""
    path = os.path.expanduser(path)
    try:
        return SSHConfig.from_path(path)
    except (OSError, ConfigParseError) as ex:
        logger.debug("no ssh config from %s: %s", path, ex)
        return None


def _apply_alias(token, user, ssh_config):
    options = ssh_config.lookup(token.hostname)
    hostname = options.get("hostname") or token.hostname
    user = options.get("user") or user
    port = token.port
    if port is None and options.get("port"):
        try:
            port = int(options["port"]) or None
        except ValueError:
            logger.debug("ignoring bad port %r for %s",
                         options["port"], token.hostname)
    return hostname, user, port


def resolve_host(token, default_user, timeout, auth_methods,
                 ssh_config=None, client_factory=SSHClient):
    """
    :param token: raw ``[user[:password]@]host[:port]`` string
    :param default_user: user when neither token nor alias names one
    :param auth_methods: batch wide methods, copied per host
    :return: a `ResolvedHost`, or None if the token is not a valid endpoint
    """
    try:
        parsed = parse_host_token(token)
    except InvalidHostError:
        logger.debug("dropping invalid host token %r", token)
        return None

    user = default_user
    hostname, port = parsed.hostname, parsed.port
    if ssh_config is not None:
        hostname, user, port = _apply_alias(parsed, user, ssh_config)

    methods = list(auth_methods)
    if parsed.user:
        user = parsed.user
    if parsed.password is not None:
        methods.extend(get_auth_password(parsed.password))

    if port is None:
        port = DEFAULT_PORT
    return ResolvedHost(user, hostname, port, timeout, methods,
                        client_factory=client_factory)


def resolve_hosts(tokens, default_user, timeout, auth_methods,
                  ssh_config=None, client_factory=SSHClient):
    """Resolve a batch. Invalid tokens are dropped, duplicates are kept."""
    if not auth_methods:
        raise NoAuthMethodError("Key(s) doesn't exist.")
    hosts = []
    for token in tokens:
        host = resolve_host(token, default_user, timeout, auth_methods,
                            ssh_config=ssh_config,
                            client_factory=client_factory)
        if host is not None:
            hosts.append(host)
    return hosts
