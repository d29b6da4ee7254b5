__author__ = 'abdul'

from mongotm.objects.base import StateEmitter
from mongotm.utils import settle_all
from mongotm.mongotm_logging import log_info


###############################################################################
class ClusterState(object):
    STOPPED = "stopped"
    RUNNING = "running"


###############################################################################
# Generic Cluster Class
###############################################################################
class Cluster(StateEmitter):
    """
    A named group of servers. start/stop/purge fan out to every server
    concurrently and return once all of them have settled.
    """

    ###########################################################################
    # Constructor and other init methods
    ###########################################################################
    def __init__(self, name):
        super(Cluster, self).__init__()
        self._name = name
        self._servers = []
        self._state = ClusterState.STOPPED

    ###########################################################################
    def _add_server(self, server):
        self.relay_states_of(server)
        self._servers.append(server)

    ###########################################################################
    def _remove_server(self, server):
        server.remove_state_listener(self.emit_state_event)
        self._servers.remove(server)

    ###########################################################################
    # Properties
    ###########################################################################
    @property
    def name(self):
        return self._name

    ###########################################################################
    @property
    def id(self):
        return self._name

    ###########################################################################
    @property
    def state(self):
        return self._state

    ###########################################################################
    def _set_state(self, state):
        self._state = state
        self.emit_state(state)

    ###########################################################################
    def get_display_name(self):
        return self._name

    ###########################################################################
    def get_servers(self):
        return list(self._servers)

    ###########################################################################
    def get_addresses(self):
        return [server.address for server in self._servers]

    ###########################################################################
    def get_server_by_address(self, address):
        for server in self._servers:
            if server.address == address:
                return server

    ###########################################################################
    # Lifecycle
    ###########################################################################
    async def purge(self):
        log_info("Purging cluster '%s'..." % self.id)
        await settle_all([server.purge() for server in self._servers],
                         "Purging member of '%s'" % self.id)

    ###########################################################################
    async def start(self):
        log_info("Starting cluster '%s'..." % self.id)
        await self.start_servers()
        self._set_state(ClusterState.RUNNING)

    ###########################################################################
    async def start_servers(self):
        await settle_all([server.start() for server in self._servers],
                         "Starting member of '%s'" % self.id)

    ###########################################################################
    async def stop(self):
        log_info("Stopping cluster '%s'..." % self.id)
        await self.stop_servers()
        self._set_state(ClusterState.STOPPED)

    ###########################################################################
    async def stop_servers(self):
        await settle_all([server.stop() for server in self._servers],
                         "Stopping member of '%s'" % self.id)
