__author__ = 'abdul'

from mongotm.config import (
    DEFAULT_MONGOD, DEFAULT_MONGOS, read_config_json, settings_from_document
)
from mongotm.errors import ConfigurationError
from mongotm.objects.replicaset_cluster import ReplicaSetCluster
from mongotm.objects.sharded_cluster import ShardedCluster
from mongotm.mongotm_logging import log_verbose

###############################################################################
# CONSTS
###############################################################################

TOPOLOGY_KEYS = ["mongod", "mongos", "settings", "replicaSet", "shards",
                 "configServers", "proxies"]


###############################################################################
def load_topology_document(path):
    return read_config_json("topology", path)

###############################################################################
async def build_topology(topology_doc, launcher=None, client_factory=None):
    """
    Builds a ReplicaSetCluster or a ShardedCluster out of a topology document.

    {"replicaSet": {"name": ..., "members": [...]}} makes a replica set.
    {"shards": [...], "configServers": {...}, "proxies": [...]} makes a
    sharded cluster. Both accept "mongod", "mongos" and "settings".
    """
    unknown = set(topology_doc.keys()) - set(TOPOLOGY_KEYS)
    if unknown:
        raise ConfigurationError("Unknown topology keys %s. Valid keys are "
                                 "%s" % (sorted(unknown), TOPOLOGY_KEYS))

    mongod = topology_doc.get("mongod") or DEFAULT_MONGOD
    mongos = topology_doc.get("mongos") or DEFAULT_MONGOS
    settings = settings_from_document(topology_doc.get("settings"))

    if "replicaSet" in topology_doc:
        if "shards" in topology_doc:
            raise ConfigurationError("A topology is either a 'replicaSet' or"
                                     " a sharded cluster with 'shards', "
                                     "not both")
        rs_doc = topology_doc["replicaSet"]
        log_verbose("Building replica set '%s'" % rs_doc.get("name"))
        return ReplicaSetCluster(_get_name(rs_doc, "replicaSet"),
                                 rs_doc.get("members"),
                                 mongod=mongod,
                                 settings=settings_from_document(
                                     rs_doc.get("settings"), base=settings),
                                 launcher=launcher,
                                 client_factory=client_factory)

    if "shards" not in topology_doc:
        raise ConfigurationError("Topology must have a 'replicaSet' or "
                                 "'shards'")

    for key in ["configServers", "proxies"]:
        if not topology_doc.get(key):
            raise ConfigurationError("Sharded topology is missing '%s'" % key)

    cluster = ShardedCluster(mongod=mongod, mongos=mongos, settings=settings,
                             launcher=launcher,
                             client_factory=client_factory)

    for shard_doc in topology_doc["shards"]:
        cluster.add_shard(shard_doc.get("members"),
                          _get_name(shard_doc, "shard"),
                          settings=shard_doc.get("settings"))

    config_doc = topology_doc["configServers"]
    await cluster.add_configuration_servers(config_doc.get("members"),
                                            repl_set=config_doc.get("name"))
    cluster.add_proxies(topology_doc["proxies"])

    return cluster

###############################################################################
def _get_name(doc, what):
    name = doc.get("name")
    if not name:
        raise ConfigurationError("%s %r has no 'name'" % (what, doc))
    return name

###############################################################################
def get_topology_servers(topology):
    if isinstance(topology, ShardedCluster):
        servers = []
        for shard in topology.get_shards():
            servers.extend(shard.get_servers())
        servers.extend(topology.get_config_servers().get_servers())
        servers.extend(topology.get_proxies())
        return servers

    return topology.get_servers()

###############################################################################
def get_topology_url(topology):
    if isinstance(topology, ShardedCluster):
        return "mongodb://%s" % topology.url()

    # replica set urls are "setName/host:port,..."
    set_name, addresses = topology.url().split("/", 1)
    return "mongodb://%s/?replicaSet=%s" % (addresses, set_name)
