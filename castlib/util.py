import logging
import re

logger = logging.getLogger(__name__)


def clean_text(cmd):
    """Strip surrounding newlines and spaces from a command line"""
    return cmd.strip("\n").strip()


def read_host_file(path):
    """
    :param path: file with one '[user[:password]@]host[:port]' per line
    :return: list of host tokens, or None if the file cannot be read
    """
    try:
        with open(path, 'r') as f:
            lines = f.readlines()
    except (IOError, OSError) as e:
        logger.warning("Could not open hosts file %s: %s", path, e.strerror)
        return None

    hosts = []
    for line in lines:
        # strip comments
        line = re.sub("#.*", '', line).strip()
        if line:
            hosts.append(line)
    return hosts


def parse_host_string(host_string):
    """Split a comma separated host list into tokens"""
    return [entry.strip() for entry in host_string.split(',') if entry.strip()]


def host_tokens(host_file=None, host_string=None):
    """Tokens from the host file when it yields any, else from the host list"""
    hosts = None
    if host_file:
        hosts = read_host_file(host_file)
    if not hosts and host_string:
        hosts = parse_host_string(host_string)
    return hosts or []


def split_keys(key_string):
    return [key.strip() for key in key_string.split(',') if key.strip()]
