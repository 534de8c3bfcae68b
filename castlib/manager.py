import logging
import sys

from castlib.util import clean_text
from castssh.clients.native.parallel import ParallelSSHClient
from castssh.exceptions import Timeout

logger = logging.getLogger(__name__)

PROMPT = ">>> "
EXIT_COMMAND = "exit"

RED, YELLOW, MAGENTA, CYAN = 31, 33, 35, 36


def with_color(string, fg, bold=False):
    if bold:
        string = "\x1b[1m%s\x1b[22m" % string
    return "\x1b[%dm%s\x1b[39m" % (fg, string)


def has_colors(stream):
    if not hasattr(stream, "isatty") or not stream.isatty():
        return False
    try:
        import curses
        curses.setupterm()
        return curses.tigetnum("colors") > 2
    except Exception:
        return False


class Manager:
    """Drives a resolved batch: one command, or a prompt loop, then close.

    Sessions opened by one command are reused by the next, and a host that
    failed to connect is tried again on the next command.
    """

    def __init__(self, hosts, timeout, client=None, stdin=None, stdout=None):
        self.hosts = hosts
        self.timeout = timeout
        self.client = client if client is not None else ParallelSSHClient(hosts)
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.colors = has_colors(self.stdout)

    def run(self, cmd=None, interactive=False):
        try:
            if interactive:
                self.interactive()
            else:
                cmd = clean_text(cmd or "")
                if cmd:
                    self.write(f"{PROMPT}{cmd}\n")
                    self.execute(cmd)
        finally:
            self.close()

    def interactive(self):
        while True:
            self.write(PROMPT)
            line = self.stdin.readline()
            if not line:
                # EOF ends the loop like 'exit'
                self.write("\n")
                break
            cmd = clean_text(line)
            if cmd == EXIT_COMMAND:
                break
            if cmd:
                self.execute(cmd)

    def execute(self, cmd):
        """Run cmd on every host, printing results as they arrive"""
        results = []
        try:
            for result in self.client.run_command(cmd, self.timeout):
                results.append(result)
                self.report(result)
        except Timeout as ex:
            logger.debug("%s", ex)
            self.write(self.paint("Timed out!", RED) + "\n")
        return results

    def report(self, result):
        self.write(self.format_result(result))

    def format_result(self, result):
        header = f"{self.paint(result.host, CYAN)} > {result.command}"
        if result.failed:
            header += " " + self.paint("[FAILURE]", RED)
        elif result.exit_code:
            header += " " + self.paint(f"[exit {result.exit_code}]", YELLOW)
        text = result.text
        if not text:
            return header + "\n"
        if not text.endswith("\n"):
            text += "\n"
        return f"{header}\n{text}\n"

    def paint(self, value, fg, bold=False):
        if self.colors:
            return with_color(value, fg, bold)
        return str(value)

    def write(self, data):
        self.stdout.write(data)
        self.stdout.flush()

    def close(self):
        self.client.close()


class FatalError(RuntimeError):
    """A fatal error that stops the run before any command is sent."""
    pass
