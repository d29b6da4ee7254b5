__author__ = 'abdul'

from bson.son import SON

from mongotm.objects.base import StateEmitter
from mongotm.objects.cluster import ClusterState
from mongotm.objects.config_servers import ConfigServerCluster
from mongotm.objects.mongod import MongodServer
from mongotm.objects.mongos import MongosServer
from mongotm.objects.replicaset_cluster import ReplicaSetCluster
from mongotm.config import (
    Settings, DEFAULT_MONGOD, DEFAULT_MONGOS, member_specs_from_documents,
    settings_from_document
)
from mongotm.errors import TopologyException, ConfigOrderError
from mongotm.utils import settle_all, document_pretty_string
from mongotm.mongotm_logging import (
    log_info, log_verbose, log_exception, log_error, log_db_command
)


###############################################################################
# ShardedCluster Class
###############################################################################
class ShardedCluster(StateEmitter):
    """
    Shards (replica sets), one config server topology and mongos routers.
    The config server topology is a replica set for mongodb >= 3.2 and
    three legacy config servers before that.
    """

    ###########################################################################
    # Constructor
    ###########################################################################
    def __init__(self, name="shardedCluster", mongod=DEFAULT_MONGOD,
                 mongos=DEFAULT_MONGOS, settings=None, launcher=None,
                 client_factory=None):
        super(ShardedCluster, self).__init__()
        self._name = name
        self._mongod = mongod
        self._mongos = mongos
        self._settings = settings or Settings()
        self._launcher = launcher
        self._client_factory = client_factory

        self._shards = []
        self._config_servers = None
        self._proxies = []
        self._version_info = None
        self._state = ClusterState.STOPPED
        self.config_servers_replicated = None

    ###########################################################################
    # Properties
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
    def get_shards(self):
        return list(self._shards)

    ###########################################################################
    def get_config_servers(self):
        return self._config_servers

    ###########################################################################
    def get_proxies(self):
        return list(self._proxies)

    ###########################################################################
    def get_config_db_address(self):
        if self.config_servers_replicated:
            return self._config_servers.url()
        return ",".join(self._config_servers.get_addresses())

    ###########################################################################
    def url(self):
        return ",".join(proxy.address for proxy in self._proxies)

    ###########################################################################
    def _server_kwargs(self, settings=None):
        return {
            "settings": settings or self._settings,
            "launcher": self._launcher,
            "client_factory": self._client_factory
        }

    ###########################################################################
    # Discovery
    ###########################################################################
    async def discover(self):
        if self._version_info is None:
            probe_server = MongodServer({}, binary=self._mongod,
                                        **self._server_kwargs())
            self._version_info = await probe_server.probe_version()
            log_info("Discovered mongod version %s" % self._version_info)
        return self._version_info

    ###########################################################################
    # Topology registration
    ###########################################################################
    def add_shard(self, member_specs, repl_set, settings=None):
        if isinstance(settings, dict):
            settings = settings_from_document(settings, base=self._settings)

        shard = ReplicaSetCluster(repl_set, member_specs,
                                  mongod=self._mongod,
                                  **self._server_kwargs(settings))
        self.relay_states_of(shard)
        self._shards.append(shard)
        log_verbose("Added shard '%s' to '%s'" % (repl_set, self.id))
        return shard

    ###########################################################################
    async def add_configuration_servers(self, member_specs, repl_set=None):
        if self._config_servers is not None:
            raise TopologyException("Configuration servers of '%s' are "
                                    "already set" % self.id)

        version_info = await self.discover()

        specs = []
        for spec in member_specs_from_documents(member_specs):
            specs.append(spec._replace(arbiter=False).with_options(
                configsvr=True))

        if version_info.supports_replicated_config_servers():
            config_servers = ReplicaSetCluster(
                repl_set or "configRepl", specs, mongod=self._mongod,
                configsvr=True, **self._server_kwargs())
            replicated = True
        else:
            config_servers = ConfigServerCluster(
                specs, mongod=self._mongod, **self._server_kwargs())
            replicated = False

        self.relay_states_of(config_servers)
        self._config_servers = config_servers
        self.config_servers_replicated = replicated
        log_info("Using %s config servers for mongodb %s" %
                 ("replica set" if replicated else "legacy", version_info))
        return config_servers

    ###########################################################################
    def add_proxies(self, member_specs):
        if self._config_servers is None:
            raise ConfigOrderError("A configuration server topology must be "
                                   "specified before adding proxies")

        config_db = self.get_config_db_address()
        proxies = []
        for spec in member_specs_from_documents(member_specs):
            options = dict(spec.options)
            if options.get("configdb"):
                if (self.config_servers_replicated and
                        "/" not in options["configdb"]):
                    options["configdb"] = "%s/%s" % (
                        self._config_servers.id, options["configdb"])
            else:
                options["configdb"] = config_db
            proxies.append(MongosServer(options, binary=self._mongos,
                                        **self._server_kwargs()))

        for proxy in proxies:
            self.relay_states_of(proxy)
            self._proxies.append(proxy)

        return proxies

    ###########################################################################
    # Cluster administration
    ###########################################################################
    def _get_first_proxy(self):
        if not self._proxies:
            raise TopologyException("Sharded cluster '%s' has no proxies" %
                                    self.id)
        return self._proxies[0]

    ###########################################################################
    async def _admin_command(self, cmd, credentials=None,
                             re_execute_on_error=False):
        proxy = self._get_first_proxy()
        log_db_command(cmd)
        return await proxy.execute_command(
            "admin.$cmd", cmd, credentials=credentials,
            re_execute_on_error=re_execute_on_error)

    ###########################################################################
    async def enable_sharding(self, db, credentials=None):
        log_info("Enabling sharding for db '%s'" % db)
        return await self._admin_command(SON([("enableSharding", db)]),
                                         credentials=credentials)

    ###########################################################################
    async def shard_collection(self, db, collection, shard_key, unique=False,
                               credentials=None):
        namespace = "%s.%s" % (db, collection)
        log_info("Sharding collection '%s' on %s" %
                 (namespace, document_pretty_string(shard_key)))
        cmd = SON([("shardCollection", namespace), ("key", shard_key)])
        if unique:
            cmd["unique"] = True
        return await self._admin_command(cmd, credentials=credentials)

    ###########################################################################
    async def register_shards(self):
        for shard in self._shards:
            log_info("Adding shard '%s' to '%s'" % (shard.shard_url(),
                                                    self.id))
            await self._admin_command(SON([("addShard", shard.shard_url())]),
                                      re_execute_on_error=True)

    ###########################################################################
    # Lifecycle
    ###########################################################################
    async def start(self):
        if self._config_servers is None:
            raise TopologyException("Sharded cluster '%s' has no "
                                    "configuration servers" % self.id)
        if not self._proxies:
            raise TopologyException("Sharded cluster '%s' has no proxies" %
                                    self.id)

        log_info("Starting sharded cluster '%s'..." % self.id)
        try:
            await settle_all([shard.purge() for shard in self._shards],
                             "Purging shard")
            await settle_all([shard.start() for shard in self._shards],
                             "Starting shard")

            await self._config_servers.purge()
            await self._config_servers.start()

            await settle_all([proxy.purge() for proxy in self._proxies],
                             "Purging proxy")
            await settle_all([proxy.start() for proxy in self._proxies],
                             "Starting proxy")

            await self.register_shards()
        except Exception as e:
            log_exception(e)
            log_error("Unable to start sharded cluster '%s'. Cause: %s" %
                      (self.id, e))
            raise

        self._set_state(ClusterState.RUNNING)
        log_info("Sharded cluster '%s' is running: %s" % (self.id,
                                                          self.url()))

    ###########################################################################
    async def stop(self):
        if self._state != ClusterState.RUNNING:
            log_verbose("Sharded cluster '%s' is not running" % self.id)
            return

        log_info("Stopping sharded cluster '%s'..." % self.id)
        await settle_all([proxy.stop() for proxy in self._proxies],
                         "Stopping proxy")
        await self._config_servers.stop()
        await settle_all([shard.stop() for shard in self._shards],
                         "Stopping shard")
        self._set_state(ClusterState.STOPPED)

    ###########################################################################
    async def purge(self):
        if self._state == ClusterState.RUNNING:
            log_verbose("Not purging sharded cluster '%s' while it is "
                        "running" % self.id)
            return

        log_info("Purging sharded cluster '%s'..." % self.id)
        await settle_all([proxy.purge() for proxy in self._proxies],
                         "Purging proxy")
        if self._config_servers is not None:
            await self._config_servers.purge()
        await settle_all([shard.purge() for shard in self._shards],
                         "Purging shard")

    ###########################################################################
    async def restart(self):
        await self.stop()
        await self.start()
