__author__ = 'abdul'

import asyncio

from pymongo.errors import ConnectionFailure, OperationFailure

from mongotm.objects.server import Server
from mongotm.config import DEFAULT_MONGOS
from mongotm.errors import TransientCommandError, is_shard_not_known_error
from mongotm.utils import backoff_delays
from mongotm.mongotm_logging import log_verbose, log_warning


###############################################################################
# MongosServer Class
###############################################################################
class MongosServer(Server):

    ###########################################################################
    # Constructor
    ###########################################################################
    def __init__(self, options, binary=DEFAULT_MONGOS, **kwargs):
        super(MongosServer, self).__init__(binary, options, **kwargs)

    ###########################################################################
    def get_config_db_address(self):
        return self.get_cmd_option("configdb")

    ###########################################################################
    async def execute_command(self, namespace, cmd, credentials=None,
                              re_execute_on_error=False):
        """
        Runs cmd on the database named by the namespace ("admin.$cmd" and
        "admin" both mean the admin db). With re_execute_on_error, errors
        raised because the router has not learned about a shard yet are
        retried with exponential backoff.
        """
        dbname = namespace.split(".")[0]
        if not re_execute_on_error:
            return await super(MongosServer, self).execute_command(
                dbname, cmd, credentials=credentials)

        settings = self.settings
        delays = backoff_delays(settings.router_retry_attempts,
                                settings.router_backoff_ms,
                                max_ms=settings.router_max_backoff_ms)
        attempt = 1
        while True:
            try:
                return await super(MongosServer, self).execute_command(
                    dbname, cmd, credentials=credentials)
            except (OperationFailure, ConnectionFailure) as e:
                if not is_shard_not_known_error(e):
                    raise

                delay = next(delays, None)
                if delay is None:
                    raise TransientCommandError(
                        "Command %s failed on router '%s' after %s attempts."
                        " Cause: %s" % (list(cmd.keys())[0], self.id,
                                        attempt, e), cause=e)

                log_warning("Command %s failed on router '%s': %s. "
                            "Retrying in %.1f sec..." %
                            (list(cmd.keys())[0], self.id, e, delay))
                if isinstance(e, ConnectionFailure):
                    self.close_client()
                await asyncio.sleep(delay)
                attempt += 1
                log_verbose("Re-executing %s on router '%s' (attempt %s)" %
                            (list(cmd.keys())[0], self.id, attempt))
