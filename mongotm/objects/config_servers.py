__author__ = 'abdul'

from mongotm.objects.cluster import Cluster
from mongotm.objects.mongod import MongodServer
from mongotm.config import DEFAULT_MONGOD, member_specs_from_documents
from mongotm.errors import ConfigurationError

# legacy (pre 3.2) config servers always come in threes
CONFIG_SERVER_COUNT = 3


###############################################################################
# ConfigServerCluster Class
###############################################################################
class ConfigServerCluster(Cluster):
    """
    Three independent config servers. No replication, no election.
    """

    ###########################################################################
    def __init__(self, member_specs, mongod=DEFAULT_MONGOD, name="configServers",
                 **server_kwargs):
        super(ConfigServerCluster, self).__init__(name)

        member_specs = member_specs_from_documents(member_specs)
        if len(member_specs) != CONFIG_SERVER_COUNT:
            raise ConfigurationError("Config servers must be exactly %s "
                                     "servers, got %s" %
                                     (CONFIG_SERVER_COUNT, len(member_specs)))

        for spec in member_specs:
            options = dict(spec.options)
            options["configsvr"] = True
            options.pop("replSet", None)
            self._add_server(MongodServer(options, binary=mongod,
                                          **server_kwargs))

    ###########################################################################
    def url(self):
        return ",".join(self.get_addresses())
