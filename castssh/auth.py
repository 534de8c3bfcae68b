"""Authentication methods offered to an SSH session, in order."""
import logging
import os
import socket

from paramiko import PKey

from .exceptions import NoAuthMethodError

logger = logging.getLogger(__name__)


class AuthMethod:
    """One way of authenticating a user on an established ssh2 session."""

    def authenticate(self, session, user):
        raise NotImplementedError


class AgentAuth(AuthMethod):

    def __init__(self, socket_path):
        self.socket_path = socket_path

    def authenticate(self, session, user):
        session.agent_auth(user)

    def __repr__(self):
        return "agent(%s)" % self.socket_path


class PublicKeyFileAuth(AuthMethod):

    def __init__(self, path, key_type):
        self.path = path
        self.key_type = key_type

    def authenticate(self, session, user):
        session.userauth_publickey_fromfile(user, self.path)

    def __repr__(self):
        return "%s(%s)" % (self.key_type, self.path)


class PasswordAuth(AuthMethod):

    def __init__(self, password):
        self.password = password

    def authenticate(self, session, user):
        session.userauth_password(user, self.password)

    def __repr__(self):
        return "password(***)"


def agent_auth():
    """Agent method if $SSH_AUTH_SOCK accepts a connection, else None."""
    path = os.getenv("SSH_AUTH_SOCK")
    if not path:
        return None
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        sock.connect(path)
    except OSError as ex:
        logger.debug("ssh agent at %s unreachable: %s", path, ex)
        return None
    finally:
        sock.close()
    return AgentAuth(path)


def public_key_file(path):
    path = os.path.expanduser(path)
    try:
        key = PKey.from_path(path)
    except Exception as ex:
        # missing, unreadable, encrypted and unsupported keys are skipped
        logger.debug("skipping key %s: %s", path, ex)
        return None
    return PublicKeyFileAuth(path, key.get_name())


def get_auth_password(password):
    return [PasswordAuth(password)]


def get_auth_keys(keys):
    """
    :param keys: candidate private key paths, tried in order
    :return: agent method first when reachable, then every usable key file
    """
    methods = []

    agent = agent_auth()
    if agent is not None:
        methods.append(agent)

    for keyname in keys:
        if not keyname.strip():
            continue
        pkey = public_key_file(keyname.strip())
        if pkey is not None:
            methods.append(pkey)

    return methods


def resolve_auth_methods(keys, password=None):
    methods = get_auth_keys(keys)
    if password is not None:
        methods.extend(get_auth_password(password))
    if not methods:
        raise NoAuthMethodError("Key(s) doesn't exist.")
    return methods
