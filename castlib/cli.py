import argparse
import getpass
import logging
import os
import sys

from castlib.manager import MAGENTA, RED, FatalError, Manager, has_colors, with_color
from castlib.util import host_tokens, split_keys
from castssh import __version__
from castssh.auth import resolve_auth_methods
from castssh.exceptions import NoAuthMethodError
from castssh.host import DEFAULT_SSH_CONFIG, load_ssh_config, resolve_hosts

_DEFAULT_TIMEOUT = 15
_DEFAULT_HOSTS = "localhost"
_DEFAULT_KEYS = ",".join(
    os.path.join("~", ".ssh", name) for name in ("id_ed25519", "id_dsa", "id_rsa")
)

logger = logging.getLogger(__name__)


def common_parser():

    parser = argparse.ArgumentParser(prog="castssh",
                                     description="Run command on multiple hosts over SSH")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="action", metavar="COMMAND")

    exec_parser = subparsers.add_parser("exec", aliases=["e"],
                                        conflict_handler="resolve",
                                        help="Execute command to all hosts")
    exec_parser.epilog = "Example: castssh exec --hosts web1,deploy@web2:2222 uptime"
    exec_parser.add_argument("-i", "--interactive", dest="interactive", action="store_true",
                             help="read commands from a prompt until 'exit'")
    exec_parser.add_argument("--hosts", dest="hosts",
                             help="multiple hosts, comma separated "
                                  "('[user[:password]@]host[:port]')")
    exec_parser.add_argument("--hostfile", dest="host_file", metavar="HOST_FILE",
                             help="file with one host per line, wins over --hosts")
    exec_parser.add_argument("-u", "--user", dest="user",
                             help="SSH auth user")
    exec_parser.add_argument("--timeout", dest="timeout", type=int,
                             help="timeout (secs) for a whole command across all hosts")
    exec_parser.add_argument("--keys", dest="keys",
                             help="SSH auth keys (comma separated)")
    exec_parser.add_argument("-F", "--ssh-config", dest="ssh_config",
                             help="ssh config file for host aliases")
    exec_parser.add_argument("-A", "--askpass", dest="askpass", action="store_true",
                             help="Ask for a password used on every host (OPTIONAL)")
    exec_parser.add_argument("-v", "--verbose", dest="verbose", action="store_true",
                             help="turn on warning and diagnostic messages (OPTIONAL)")
    exec_parser.add_argument("cmd", nargs="*",
                             help="command to run when not interactive")
    exec_parser.set_defaults(**common_defaults())

    return parser


def common_defaults(**kwargs):
    defaults = dict(hosts=_DEFAULT_HOSTS, timeout=_DEFAULT_TIMEOUT,
                    keys=_DEFAULT_KEYS, ssh_config=DEFAULT_SSH_CONFIG)
    defaults.update(**kwargs)
    env_vars = [
        ('user', 'USER'),
        ('hosts', 'CASTSSH_HOSTS'),
        ('host_file', 'CASTSSH_HOSTFILE'),
        ('timeout', 'CASTSSH_TIMEOUT'),
        ('keys', 'CASTSSH_KEYS'),
        ('ssh_config', 'CASTSSH_SSH_CONFIG'),
    ]
    flag_vars = [
        ('verbose', 'CASTSSH_VERBOSE'),
    ]

    for option, var in env_vars:
        value = os.getenv(var)
        if value:
            defaults[option] = value

    for option, var in flag_vars:
        value = os.getenv(var)
        if value:
            defaults[option] = env_flag(value)

    return defaults


def env_flag(value):
    return value.strip().lower() in ("1", "true", "yes", "on")


def setup_logging(verbose):
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def label(manager, text):
    return manager.paint(text, MAGENTA, bold=True)


def build_manager(opts, stdout=None):
    """Resolve credentials and hosts into a ready Manager"""
    password = getpass.getpass("Password: ") if opts.askpass else None
    keys = split_keys(opts.keys)
    try:
        auth_methods = resolve_auth_methods(keys, password)
    except NoAuthMethodError as ex:
        raise FatalError(str(ex))

    user = opts.user or getpass.getuser()
    ssh_config = load_ssh_config(opts.ssh_config) if opts.ssh_config else None
    tokens = host_tokens(opts.host_file, opts.hosts)
    hosts = resolve_hosts(tokens, user, opts.timeout, auth_methods, ssh_config=ssh_config)
    logger.debug("resolved %d of %d host token(s)", len(hosts), len(tokens))

    manager = Manager(hosts, opts.timeout, stdout=stdout)
    manager.write(f"{label(manager, 'Keys: ')} {auth_methods}\n")
    manager.write(f"{label(manager, 'Hosts: ')} {hosts}\n")
    return manager


def main(argv=None):
    parser = common_parser()
    opts = parser.parse_args(argv)
    if opts.action is None:
        parser.print_help()
        return 2

    setup_logging(opts.verbose)
    try:
        manager = build_manager(opts)
    except FatalError as ex:
        if has_colors(sys.stderr):
            sys.stderr.write(with_color(ex, RED) + "\n")
        else:
            sys.stderr.write(f"{ex}\n")
        return 1

    try:
        manager.run(" ".join(opts.cmd), interactive=opts.interactive)
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
