"""Run one command on many hosts over SSH, in parallel, under one deadline.

Start with `castssh.host.resolve_hosts` to build a batch and
`castssh.clients.native.parallel.ParallelSSHClient.run_command` to
dispatch commands to it.
"""

from logging import getLogger, NullHandler

__version__ = "1.0.0"

logger = getLogger('castssh')
logger.addHandler(NullHandler())
