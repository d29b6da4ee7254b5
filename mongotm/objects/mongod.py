__author__ = 'abdul'

from bson.son import SON

from mongotm.objects.server import Server
from mongotm.config import DEFAULT_MONGOD


###############################################################################
# Member roles as reported by isMaster
###############################################################################
class MemberRole(object):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    PASSIVE = "passive"
    ARBITER = "arbiter"


###############################################################################
def get_member_role(status):
    """
    Classifies an isMaster response. Members that are starting up, recovering
    or in maintenance have no role.
    """
    if not status:
        return None
    if status.get("ismaster"):
        return MemberRole.PRIMARY
    if status.get("secondary"):
        if status.get("hidden"):
            return MemberRole.PASSIVE
        return MemberRole.SECONDARY
    if status.get("arbiterOnly"):
        return MemberRole.ARBITER
    return None


###############################################################################
# MongodServer Class
###############################################################################
class MongodServer(Server):

    ###########################################################################
    # Constructor
    ###########################################################################
    def __init__(self, options, binary=DEFAULT_MONGOD, **kwargs):
        super(MongodServer, self).__init__(binary, options, **kwargs)

    ###########################################################################
    # Properties
    ###########################################################################
    def get_repl_set_name(self):
        return self.get_cmd_option("replSet")

    ###########################################################################
    def is_config_server(self):
        return bool(self.get_cmd_option("configsvr"))

    ###########################################################################
    # Replica set helpers
    ###########################################################################
    async def get_rs_config(self):
        result = await self.execute_command(
            "admin", SON([("replSetGetConfig", 1)]))
        return result["config"]
