import logging
import socket
from socket import gaierror as sock_gaierror, error as sock_error

from gevent import get_hub
from gevent.lock import BoundedSemaphore
from ssh2.exceptions import SSH2Error
from ssh2.session import Session

from ...exceptions import SessionError, UnknownHostException, ConnectionErrorException, \
    AuthenticationException

logger = logging.getLogger(__name__)


class SSHClient:
    """Session manager for one resolved host.

    Connects lazily on the first command and stays connected for the
    following ones. Any failure drops the connection so the next command
    starts again from scratch.

    One command at a time uses the session: a command sent while an earlier
    one is still running waits for it, and a disconnect requested meanwhile
    happens when it finishes.
    """

    def __init__(self, host):
        self.host = host
        self.session = None
        self.sock = None
        self.encoding = "utf-8"
        self._lock = BoundedSemaphore(1)
        self._closing = False

    def __del__(self):
        self.disconnect()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.disconnect()

    @property
    def connected(self):
        return self.session is not None

    @property
    def busy(self):
        return self._lock.locked()

    def run_command(self, command):
        """Run one command and wait for it.

        The blocking libssh2 calls run on the hub thread pool, so only the
        calling greenlet waits.

        :return: (stdout, stderr, exit_code)
        """
        with self._lock:
            try:
                return get_hub().threadpool.apply(self._run_command, (command,))
            finally:
                if self._closing:
                    self._disconnect()

    def _run_command(self, command):
        try:
            if not self.connected:
                self._connect()
                self._init()
            channel = self.open_session()
            try:
                channel.execute(command)
                stdout = self.read_stdout(channel)
                stderr = self.read_stderr(channel)
                channel.close()
                channel.wait_closed()
                exit_code = channel.get_exit_status()
            except SSH2Error as ex:
                raise SessionError(ex)
        except Exception:
            self._disconnect()
            raise
        return stdout, stderr, exit_code

    def _connect(self):
        hostname, port = self.host.hostname, self.host.port
        logger.debug("connecting to %s", self.host)
        try:
            self.sock = socket.create_connection((hostname, port), timeout=self.host.timeout)
        except sock_gaierror as ex:
            raise UnknownHostException("Unknown host %s - %s" % (hostname, ex))
        except sock_error as ex:
            raise ConnectionErrorException("Error connecting to host '%s:%s' - %s" % (hostname, port, ex))

    def _init(self):
        self.session = Session()
        self.session.set_timeout(int(self.host.timeout * 1000))
        try:
            self.session.handshake(self.sock)
        except SSH2Error as ex:
            raise SessionError("Error connecting to host '%s' - %s" % (self.host.address, ex))
        self.auth()

    def auth(self):
        user = self.host.user
        for method in self.host.auth_methods:
            try:
                method.authenticate(self.session, user)
            except SSH2Error as ex:
                logger.debug("%r refused for %s: %s", method, self.host, ex)
                continue
            if self.session.userauth_authenticated():
                return
        raise AuthenticationException("No authentication methods succeeded for %s" % self.host)

    def open_session(self):
        try:
            chan = self.session.open_session()
        except SSH2Error as ex:
            raise SessionError(ex)

        return chan

    def read_stderr(self, channel):
        return self._read_output(channel.read_stderr)

    def read_stdout(self, channel):
        return self._read_output(channel.read)

    def _read_output(self, func):
        buffer = []
        size, data = func()
        while size > 0:
            buffer.append(data)
            size, data = func()
        return b"".join(buffer).decode(self.encoding, errors="replace")

    def disconnect(self):
        if self.busy:
            self._closing = True
            return
        self._disconnect()

    def _disconnect(self):
        self._closing = False
        session, sock = self.session, self.sock
        self.session = None
        self.sock = None
        if session is not None:
            try:
                session.disconnect()
            except SSH2Error as ex:
                logger.debug("error disconnecting from %s: %s", self.host, ex)
        if sock is not None:
            sock.close()
