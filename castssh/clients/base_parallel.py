import logging
import time

import gevent
from gevent.queue import Queue, Empty

from ..exceptions import Timeout
from ..output import CommandResult

logger = logging.getLogger(__name__)

# results not yet consumed before a host blocks on put
RESULT_QUEUE_SIZE = 10


class BaseParallelSSHClient:
    """Runs a command on every host of a batch, one greenlet per host.

    The batch list is never modified by the greenlets; each greenlet only
    touches the host it was given.
    """

    def __init__(self, hosts):
        self.hosts = hosts

    def run_command(self, command, timeout):
        """Yield one `CommandResult` per host, in arrival order.

        A single deadline covers the whole batch. If it passes before every
        host reported, `Timeout` is raised; hosts still running are left to
        finish on their own and their results are dropped.
        """
        results = Queue(maxsize=RESULT_QUEUE_SIZE)
        deadline = time.monotonic() + timeout

        for host in self.hosts:
            gevent.spawn(self._put_result, results, host, command)

        total = len(self.hosts)
        for received in range(total):
            remaining = deadline - time.monotonic()
            try:
                if remaining <= 0:
                    raise Empty
                result = results.get(timeout=remaining)
            except Empty:
                raise Timeout("%d of %d host(s) did not answer %r within %ss"
                              % (total - received, total, command, timeout))
            yield result

    def _put_result(self, results, host, command):
        try:
            stdout, stderr, exit_code = self._run_command(host, command)
            result = CommandResult(host, command, stdout, stderr, exit_code)
        except Exception as ex:
            logger.debug("%s failed on %s: %s", command, host, ex)
            result = CommandResult(host, command, error=ex)
        results.put(result)

    def _run_command(self, host, command):
        raise NotImplementedError

    def close(self):
        for host in self.hosts:
            host.close()
