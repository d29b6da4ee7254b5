__author__ = 'abdul'

import asyncio

from functools import partial

from pymongo import MongoClient

from mongotm.mongotm_logging import log_debug

###############################################################################
# CONSTANTS
###############################################################################

# db connection timeout, 10 seconds
CONN_TIMEOUT = 10000

# health probes should fail fast
SERVER_SELECTION_TIMEOUT = 2000

# topology client option => pymongo keyword
CLIENT_OPTION_NAMES = {
    "ssl": "tls",
    "tls": "tls",
    "sslCA": "tlsCAFile",
    "tlsCAFile": "tlsCAFile",
    "sslPEMKeyFile": "tlsCertificateKeyFile",
    "tlsCertificateKeyFile": "tlsCertificateKeyFile",
    "sslPEMKeyPassword": "tlsCertificateKeyFilePassword",
    "tlsAllowInvalidCertificates": "tlsAllowInvalidCertificates",
    "tlsAllowInvalidHostnames": "tlsAllowInvalidHostnames",
}


###############################################################################
def make_client_kwargs(client_options):
    kwargs = {
        "directConnection": True,
        "connectTimeoutMS": CONN_TIMEOUT,
        "socketTimeoutMS": CONN_TIMEOUT,
        "serverSelectionTimeoutMS": SERVER_SELECTION_TIMEOUT
    }

    for name, value in (client_options or {}).items():
        if name == "rejectUnauthorized":
            kwargs["tlsAllowInvalidCertificates"] = not value
        elif name in CLIENT_OPTION_NAMES:
            kwargs[CLIENT_OPTION_NAMES[name]] = value
        else:
            kwargs[name] = value

    return kwargs


###############################################################################
# MongoCommandClient Class
###############################################################################
class MongoCommandClient(object):
    """
    Sends admin commands to one server over a direct (non topology-aware)
    pymongo connection. pymongo is blocking so every command runs in the
    loop's default executor. Errors are pymongo's own.
    """

    ###########################################################################
    def __init__(self, address, client_options=None):
        self._address = address
        self._client_kwargs = make_client_kwargs(client_options)
        self._mongo_client = None

    ###########################################################################
    @property
    def address(self):
        return self._address

    ###########################################################################
    def get_mongo_client(self):
        if self._mongo_client is None:
            self._mongo_client = self.new_mongo_client()
        return self._mongo_client

    ###########################################################################
    def new_mongo_client(self, **extra_kwargs):
        host, port = self._address.split(":")
        kwargs = dict(self._client_kwargs)
        kwargs.update(extra_kwargs)
        return MongoClient(host, int(port), **kwargs)

    ###########################################################################
    async def command(self, dbname, cmd, credentials=None):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, partial(self._do_command, dbname, cmd, credentials))

    ###########################################################################
    def _do_command(self, dbname, cmd, credentials):
        log_debug("Running %s on '%s' db '%s'" % (list(cmd.keys())[0],
                                                  self._address, dbname))
        if credentials:
            username, password = credentials
            auth_client = self.new_mongo_client(username=username,
                                                password=password,
                                                authSource=dbname)
            try:
                return auth_client[dbname].command(cmd)
            finally:
                auth_client.close()

        return self.get_mongo_client()[dbname].command(cmd)

    ###########################################################################
    def close(self):
        if self._mongo_client is not None:
            self._mongo_client.close()
        self._mongo_client = None
