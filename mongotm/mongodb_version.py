__author__ = 'abdul'

import re

from collections import namedtuple

from mongotm.errors import VersionParseError

# config servers run as a replica set starting with this version
REPLICATED_CONFIG_SERVERS_VERSION = (3, 2)

VERSION_RE = re.compile(r"[0-9]+\.[0-9]+\.[0-9]+")

SSL_RE = re.compile(r"ssl|tls", re.IGNORECASE)


###############################################################################
# MongoDBVersionInfo class
###############################################################################
class MongoDBVersionInfo(namedtuple("MongoDBVersionInfo", ["version", "ssl"])):
    """
    Result of probing a server binary: version is a [major, minor, patch]
    list of ints and ssl tells if the binary was built with ssl support.
    """

    ###########################################################################
    def __str__(self):
        return "%s%s" % (".".join(str(p) for p in self.version),
                         " (ssl)" if self.ssl else "")

    ###########################################################################
    @property
    def major(self):
        return self.version[0]

    ###########################################################################
    @property
    def minor(self):
        return self.version[1]

    ###########################################################################
    def supports_replicated_config_servers(self):
        return (tuple(self.version[:2]) >=
                REPLICATED_CONFIG_SERVERS_VERSION)

###############################################################################
def parse_version_output(stdout, stderr=""):
    stdout = stdout or ""
    stderr = stderr or ""

    version_match = VERSION_RE.search(stdout)
    if version_match is None:
        raise VersionParseError("Cannot parse mongo version from output: %r" %
                                stdout.strip())

    version = [int(part) for part in version_match.group(0).split(".")]
    ssl = (SSL_RE.search(stdout) is not None or
           SSL_RE.search(stderr) is not None)

    return MongoDBVersionInfo(version, ssl)

###############################################################################
def make_version_info(version_number, ssl=False):
    return parse_version_output(version_number)._replace(ssl=ssl)
