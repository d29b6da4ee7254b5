__author__ = 'abdul'

import asyncio

from mongotm.config import DEFAULT_MONGOD
from mongotm.objects.mongod import MongodServer
from mongotm.version import MONGOTM_VERSION
from mongotm.mongotm_logging import stdout_log


###############################################################################
# version command
###############################################################################
def version_command(parsed_options):
    mongod = parsed_options.mongod or DEFAULT_MONGOD
    version_info = asyncio.run(MongodServer({}, binary=mongod).probe_version())

    stdout_log("mongotm %s" % MONGOTM_VERSION)
    stdout_log("%s %s (ssl %s)" % (mongod, ".".join(map(str,
                                                        version_info.version)),
                                   "supported" if version_info.ssl
                                   else "not supported"))
    return version_info
