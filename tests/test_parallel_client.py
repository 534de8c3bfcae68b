import time
import unittest

import gevent
from gevent import get_hub

from castssh.auth import PasswordAuth
from castssh.clients.base_parallel import RESULT_QUEUE_SIZE
from castssh.clients.native.parallel import ParallelSSHClient
from castssh.exceptions import ConnectionErrorException, Timeout
from castssh.host import DEFAULT_PORT, ResolvedHost, resolve_hosts


class FakeClient:
    """Answers every command with '<host>-ok' after an optional delay."""

    def __init__(self, host, delay=0, error=None):
        self.host = host
        self.delay = delay
        self.error = error
        self.commands = []
        self.closed = 0

    def run_command(self, command):
        self.commands.append(command)
        gevent.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.host.port == DEFAULT_PORT:
            name = self.host.hostname
        else:
            name = self.host.address
        return "%s-ok" % name, "", 0

    def disconnect(self):
        self.closed += 1


def fake_host(name, delay=0, error=None):
    return ResolvedHost("foo", name, DEFAULT_PORT, 5, [PasswordAuth("foo")],
                        client_factory=lambda host: FakeClient(host, delay, error))


class ParallelSSHClientTest(unittest.TestCase):

    def setUp(self):
        self.fake_cmd = "echo foo"
        self.hosts = [fake_host("127.0.0.%d" % i) for i in range(1, 4)]
        self.client = ParallelSSHClient(self.hosts)

    def test_run_command(self):
        outputs = list(self.client.run_command(self.fake_cmd, 5))

        self.assertEqual(len(self.hosts), len(outputs))
        self.assertEqual(set(map(id, self.hosts)), set(id(output.host) for output in outputs))
        for output in outputs:
            self.assertEqual(self.fake_cmd, output.command)
            self.assertEqual("%s-ok" % output.host.hostname, output.stdout)
            self.assertFalse(output.failed)

    def test_more_hosts_than_queue_slots(self):
        hosts = [fake_host("10.0.0.%d" % i) for i in range(RESULT_QUEUE_SIZE * 3)]
        client = ParallelSSHClient(hosts)

        outputs = list(client.run_command(self.fake_cmd, 5))

        self.assertEqual(len(hosts), len(outputs))

    def test_arrival_order(self):
        hosts = [fake_host("slow", delay=0.2), fake_host("fast")]
        client = ParallelSSHClient(hosts)

        outputs = list(client.run_command(self.fake_cmd, 5))

        self.assertEqual(["fast", "slow"], [output.host.hostname for output in outputs])

    def test_host_error_is_a_result(self):
        error = ConnectionErrorException("Error connecting to host 'down:22'")
        hosts = [fake_host("up"), fake_host("down", error=error)]
        client = ParallelSSHClient(hosts)

        outputs = {output.host.hostname: output for output in client.run_command(self.fake_cmd, 5)}

        self.assertFalse(outputs["up"].failed)
        self.assertTrue(outputs["down"].failed)
        self.assertIs(error, outputs["down"].error)
        self.assertEqual(str(error), outputs["down"].text)

    def test_timeout(self):
        hosts = [fake_host("fast"), fake_host("slow", delay=3)]
        client = ParallelSSHClient(hosts)
        outputs = []

        start = time.monotonic()
        with self.assertRaises(Timeout):
            for output in client.run_command(self.fake_cmd, 0.3):
                outputs.append(output)
        elapsed = time.monotonic() - start

        self.assertLess(elapsed, 1.5)
        self.assertEqual(["fast"], [output.host.hostname for output in outputs])

    def test_deadline_covers_whole_batch(self):
        # b answers 0.25s after a, well inside the timeout, but past the deadline
        hosts = [fake_host("a", delay=0.25), fake_host("b", delay=0.5)]
        client = ParallelSSHClient(hosts)

        with self.assertRaises(Timeout):
            list(client.run_command(self.fake_cmd, 0.4))

    def test_late_results_not_carried_over(self):
        hosts = [fake_host("fast"), fake_host("slow", delay=0.4)]
        client = ParallelSSHClient(hosts)

        with self.assertRaises(Timeout):
            list(client.run_command("uptime", 0.1))
        outputs = list(client.run_command("hostname", 2))

        self.assertEqual(["hostname", "hostname"], [output.command for output in outputs])
        self.assertEqual({"fast", "slow"}, set(output.host.hostname for output in outputs))

    def test_threadpool_fits_unfinished_hosts(self):
        hosts = [fake_host("10.1.0.%d" % i, delay=0.3) for i in range(40)]
        client = ParallelSSHClient(hosts)

        with self.assertRaises(Timeout):
            list(client.run_command("uptime", 0.05))
        self.assertEqual(len(hosts), client.in_flight)

        outputs = client.run_command("hostname", 2)
        self.assertGreaterEqual(get_hub().threadpool.maxsize, 2 * len(hosts))

        self.assertEqual(["hostname"] * len(hosts), [output.command for output in outputs])
        deadline = time.monotonic() + 2
        while client.in_flight and time.monotonic() < deadline:
            gevent.sleep(0.05)
        self.assertEqual(0, client.in_flight)

    def test_empty_batch(self):
        self.assertEqual([], list(ParallelSSHClient([]).run_command(self.fake_cmd, 1)))

    def test_sessions_reused_across_commands(self):
        list(self.client.run_command("uptime", 5))
        list(self.client.run_command("hostname", 5))

        for host in self.hosts:
            self.assertEqual(["uptime", "hostname"], host.client.commands)

    def test_close(self):
        self.client.close()

        for host in self.hosts:
            self.assertEqual(1, host.client.closed)

    def test_resolve_and_dispatch(self):
        hosts = resolve_hosts(
            ["a.example.com", "bad token with spaces", "u2@b.example.com:2222"],
            "alice", 5, [PasswordAuth("secret")], client_factory=FakeClient)
        client = ParallelSSHClient(hosts)

        outputs = {output.stdout: output.host for output in client.run_command(self.fake_cmd, 5)}

        self.assertEqual(2, len(hosts))
        self.assertEqual({"a.example.com-ok", "b.example.com:2222-ok"}, set(outputs))
        self.assertEqual("alice", outputs["a.example.com-ok"].user)
        self.assertEqual("u2", outputs["b.example.com:2222-ok"].user)


if "__main__" == __name__:
    unittest.main(verbosity=2)
