from gevent import get_hub

from castssh.clients.base_parallel import BaseParallelSSHClient


class ParallelSSHClient(BaseParallelSSHClient):
    """Dispatcher for hosts backed by native `SSHClient` sessions.

    Every session does its blocking work on the hub thread pool, which is
    grown so that no host waits for another one's thread, including hosts
    still running a command whose batch already timed out.
    """

    def __init__(self, hosts):
        BaseParallelSSHClient.__init__(self, hosts)
        self.in_flight = 0

    def run_command(self, command, timeout):
        self._grow_threadpool(self.in_flight + len(self.hosts))
        return BaseParallelSSHClient.run_command(self, command, timeout)

    def _grow_threadpool(self, size):
        threadpool = get_hub().threadpool
        if threadpool.maxsize < size:
            threadpool.maxsize = size

    def _run_command(self, host, command):
        self.in_flight += 1
        try:
            return host.execute(command)
        finally:
            self.in_flight -= 1
