__author__ = 'abdul'

import asyncio

from bson.son import SON
from pymongo.errors import ConnectionFailure, OperationFailure

from mongotm.objects.base import DocumentWrapper
from mongotm.objects.cluster import Cluster
from mongotm.objects.mongod import MongodServer, MemberRole, get_member_role
from mongotm.config import (
    Settings, DEFAULT_MONGOD, member_spec_from_document,
    member_specs_from_documents
)
from mongotm.errors import (
    TopologyException, ConfigurationError, ElectionTimeoutError,
    TransientCommandError, ReconfigureRejectedError, MemberNotFoundError,
    is_transient_replset_error
)
from mongotm.utils import (
    wait_for, backoff_delays, document_pretty_string
)
from mongotm.mongotm_logging import (
    log_info, log_verbose, log_warning, log_exception, log_db_command
)


###############################################################################
class ReplicaSetState(object):
    UNINITIATED = "uninitiated"
    CONVERGING = "converging"
    STABLE = "stable"
    RECONFIGURING = "reconfiguring"
    STOPPED = "stopped"
    FAILED = "failed"


# roles a member may settle in once the set has converged
SETTLED_ROLES = [MemberRole.PRIMARY, MemberRole.SECONDARY,
                 MemberRole.PASSIVE, MemberRole.ARBITER]


###############################################################################
# ReplicaSetConfig Class
###############################################################################
class ReplicaSetConfig(DocumentWrapper):
    """
    A replica set config document: {_id, version, members: [...]}.
    Never mutated in place; the with_*/without_* methods return new configs.
    """

    ###########################################################################
    @property
    def name(self):
        return self.get_property("_id")

    ###########################################################################
    @property
    def version(self):
        return self.get_property("version") or 0

    ###########################################################################
    @property
    def members(self):
        return self.get_property("members") or []

    ###########################################################################
    def get_member(self, host):
        for member in self.members:
            if member["host"] == host:
                return member

    ###########################################################################
    def has_member(self, host):
        return self.get_member(host) is not None

    ###########################################################################
    def get_hosts(self):
        return [member["host"] for member in self.members]

    ###########################################################################
    def max_member_id(self):
        max_id = -1
        for member in self.members:
            if member["_id"] > max_id:
                max_id = member["_id"]
        return max_id

    ###########################################################################
    def with_version(self, version):
        document = self.copy_document()
        document["version"] = version
        return ReplicaSetConfig(document)

    ###########################################################################
    def with_member(self, member_doc):
        if self.has_member(member_doc["host"]):
            raise ConfigurationError("'%s' is already a member of replica "
                                     "set '%s'" % (member_doc["host"],
                                                   self.name))
        document = self.copy_document()
        document["members"] = list(document.get("members") or [])
        document["members"].append(dict(member_doc))
        return ReplicaSetConfig(document)

    ###########################################################################
    def without_member(self, host):
        document = self.copy_document()
        document["members"] = [member for member in self.members
                               if member["host"] != host]
        return ReplicaSetConfig(document)

    ###########################################################################
    def has_same_members(self, other):
        return (sorted(normalize_member(m) for m in self.members) ==
                sorted(normalize_member(m) for m in other.members))

    ###########################################################################
    def count(self, predicate):
        return len([m for m in self.members if predicate(m)])


###############################################################################
def normalize_member(member_doc):
    """
    Member docs read back from a server carry default values that the docs
    we build leave out. Fill in the defaults so both compare equal.
    """
    arbiter = bool(member_doc.get("arbiterOnly", False))
    hidden = bool(member_doc.get("hidden", False))
    default_priority = 0 if (arbiter or hidden) else 1
    return (member_doc["_id"],
            member_doc["host"],
            arbiter,
            hidden,
            float(member_doc.get("priority", default_priority)),
            int(member_doc.get("votes", 1)),
            tuple(sorted((member_doc.get("tags") or {}).items())))


###############################################################################
# ReplicaSetCluster Class
###############################################################################
class ReplicaSetCluster(Cluster):

    ###########################################################################
    # Constructor and other init methods
    ###########################################################################
    def __init__(self, repl_set, member_specs, mongod=DEFAULT_MONGOD,
                 configsvr=False, settings=None, launcher=None,
                 client_factory=None):
        super(ReplicaSetCluster, self).__init__(repl_set)
        self._mongod = mongod
        self._configsvr = configsvr
        self._settings = settings or Settings()
        self._launcher = launcher
        self._client_factory = client_factory
        self._member_specs = {}
        self._state = ReplicaSetState.UNINITIATED

        member_specs = member_specs_from_documents(member_specs)
        if not member_specs:
            raise ConfigurationError("Replica set '%s' needs at least one "
                                     "member" % repl_set)

        for spec in member_specs:
            self._add_member_server(spec)

    ###########################################################################
    def _add_member_server(self, spec):
        if self.get_server_by_address(spec.address) is not None:
            raise ConfigurationError("Duplicate member '%s' in replica set "
                                     "'%s'" % (spec.address, self.id))
        server = self._make_server(spec)
        self._member_specs[server.address] = spec
        self._add_server(server)
        return server

    ###########################################################################
    def _discard_member_server(self, server):
        self._remove_server(server)
        del self._member_specs[server.address]

    ###########################################################################
    def _make_server(self, spec):
        options = dict(spec.options)
        options["replSet"] = self.id
        if self._configsvr:
            options["configsvr"] = True

        return MongodServer(options, binary=self._mongod,
                            settings=self._settings,
                            launcher=self._launcher,
                            client_factory=self._client_factory)

    ###########################################################################
    # Properties
    ###########################################################################
    @property
    def settings(self):
        return self._settings

    ###########################################################################
    def get_member_spec(self, server):
        return self._member_specs.get(server.address)

    ###########################################################################
    def url(self):
        addresses = [server.address for server in self._servers
                     if not self.get_member_spec(server).arbiter]
        return "%s/%s" % (self.id, ",".join(addresses))

    ###########################################################################
    def shard_url(self):
        return self.url()

    ###########################################################################
    def make_initial_config(self):
        members = []
        for member_id, server in enumerate(self._servers):
            spec = self.get_member_spec(server)
            members.append(spec.to_member_document(member_id))

        document = SON([("_id", self.id), ("version", 1)])
        if self._configsvr:
            document["configsvr"] = True
        document["members"] = members
        return ReplicaSetConfig(document)

    ###########################################################################
    # Polling helpers
    ###########################################################################
    async def _poll(self, predicate, timeout_ms=None):
        if timeout_ms is None:
            timeout_ms = self._settings.election_timeout_ms
        return await wait_for(predicate,
                              timeout=timeout_ms / 1000.0,
                              sleep_duration=self._settings.retry_wait_ms /
                                             1000.0)

    ###########################################################################
    async def _safe_ismaster(self, server):
        try:
            return await server.ismaster()
        except (ConnectionFailure, OperationFailure) as e:
            log_verbose("Cannot get status of member '%s': %s" %
                        (server.id, e))
            server.close_client()
            return None

    ###########################################################################
    async def get_member_statuses(self, servers=None):
        """
        isMaster every member now. Returns (server, status) pairs where
        status is None for unreachable members.
        """
        servers = self._servers if servers is None else servers
        statuses = await asyncio.gather(*[self._safe_ismaster(server)
                                          for server in servers])
        return list(zip(servers, statuses))

    ###########################################################################
    async def _get_servers_with_role(self, role):
        return [server for server, status in await self.get_member_statuses()
                if get_member_role(status) == role]

    ###########################################################################
    # Role queries
    ###########################################################################
    async def primary(self):
        primaries = await self._get_servers_with_role(MemberRole.PRIMARY)
        if len(primaries) == 1:
            return primaries[0]

    ###########################################################################
    async def secondaries(self):
        return await self._get_servers_with_role(MemberRole.SECONDARY)

    ###########################################################################
    async def passives(self):
        return await self._get_servers_with_role(MemberRole.PASSIVE)

    ###########################################################################
    async def arbiters(self):
        return await self._get_servers_with_role(MemberRole.ARBITER)

    ###########################################################################
    async def is_replicaset_initialized(self):
        """
        True if any member has joined the replica set
        """
        for server, status in await self.get_member_statuses():
            if status and status.get("setName"):
                return True
        return False

    ###########################################################################
    async def wait_for_primary(self, timeout_ms=None):
        log_verbose("Waiting for replica set '%s' to have a primary..." %
                    self.id)
        primary_server = await self._poll(self.primary, timeout_ms=timeout_ms)
        if primary_server is None:
            raise ElectionTimeoutError("No primary elected in replica set "
                                       "'%s' within %s ms" %
                                       (self.id, timeout_ms or
                                        self._settings.election_timeout_ms))
        return primary_server

    ###########################################################################
    async def configuration(self, server=None):
        if server is None:
            server = await self.wait_for_primary()

        return ReplicaSetConfig(await server.get_rs_config())

    ###########################################################################
    # Lifecycle
    ###########################################################################
    async def start(self):
        log_info("Starting replica set '%s'..." % self.id)
        await self.start_servers()

        if await self.is_replicaset_initialized():
            log_info("Replica set '%s' is already initiated. Waiting for it "
                     "to converge..." % self.id)
            self._set_state(ReplicaSetState.CONVERGING)
        else:
            await self.initiate()

        await self._wait_for_convergence()
        self._set_state(ReplicaSetState.STABLE)
        log_info("Replica set '%s' is up: %s" % (self.id, self.url()))

    ###########################################################################
    async def initiate(self):
        config = self.make_initial_config()
        target = self._get_initiate_target()
        cmd = SON([("replSetInitiate", config.get_document())])

        log_info("Initiating replica set '%s' on server '%s'..." %
                 (self.id, target.id))
        log_db_command(cmd)
        try:
            await target.execute_command("admin", cmd)
        except (OperationFailure, ConnectionFailure) as e:
            log_exception(e)
            self._set_state(ReplicaSetState.FAILED)
            raise TopologyException("Unable to initiate replica set '%s'. "
                                    "Cause: %s" % (self.id, e), cause=e)

        self._set_state(ReplicaSetState.CONVERGING)

    ###########################################################################
    def _get_initiate_target(self):
        for server in self._servers:
            if self.get_member_spec(server).can_become_primary():
                return server

        raise ConfigurationError("Replica set '%s' has no member that can "
                                 "become primary" % self.id)

    ###########################################################################
    async def _wait_for_convergence(self):
        async def is_converged():
            statuses = await self.get_member_statuses()
            if any(status is None for _, status in statuses):
                return None
            roles = [get_member_role(status) for _, status in statuses]
            if roles.count(MemberRole.PRIMARY) != 1:
                return None
            if any(role not in SETTLED_ROLES for role in roles):
                return None
            return True

        log_info("Waiting for replica set '%s' to elect a primary..." %
                 self.id)
        if not await self._poll(is_converged):
            self._set_state(ReplicaSetState.FAILED)
            raise ElectionTimeoutError("Replica set '%s' did not converge "
                                       "within %s ms" %
                                       (self.id,
                                        self._settings.election_timeout_ms))

    ###########################################################################
    async def stop(self):
        log_info("Stopping replica set '%s'..." % self.id)
        await self.stop_servers()
        self._set_state(ReplicaSetState.STOPPED)

    ###########################################################################
    async def discover(self):
        return await self._servers[0].probe_version()

    ###########################################################################
    # Reconfiguration
    ###########################################################################
    async def reconfigure(self, config, return_immediately=False,
                          force=False):
        if not isinstance(config, ReplicaSetConfig):
            config = ReplicaSetConfig(config)

        log_info("Re-configuring replica set '%s'..." % self.id)
        self._set_state(ReplicaSetState.RECONFIGURING)
        try:
            new_config = await self._send_reconfig(config, force)
            if not return_immediately:
                await self._wait_for_config_version(new_config)
        except Exception as e:
            log_exception(e)
            self._set_state(ReplicaSetState.FAILED)
            raise

        self._set_state(ReplicaSetState.STABLE)
        return new_config

    ###########################################################################
    async def _get_command_target(self, force):
        primary_server = await self.primary()
        if primary_server is not None:
            return primary_server

        if force:
            # a forced reconfig can go to any reachable data bearing member
            for server, status in await self.get_member_statuses():
                if status is not None and not status.get("arbiterOnly"):
                    log_warning("No primary in replica set '%s'. Forcing "
                                "command on '%s'" % (self.id, server.id))
                    return server

        raise TransientCommandError("Unable to determine primary server for "
                                    "replica set '%s'" % self.id)

    ###########################################################################
    async def _send_reconfig(self, config, force):
        delays = backoff_delays(self._settings.reconfigure_attempts,
                                self._settings.reconfigure_backoff_ms)
        while True:
            try:
                target = await self._get_command_target(force)
                current_config = await self.configuration(target)

                if (current_config.has_same_members(config) and
                        current_config.version >= config.version):
                    log_info("Replica set '%s' already has this "
                             "configuration (version %s)" %
                             (self.id, current_config.version))
                    return current_config

                new_config = config.with_version(current_config.version + 1)
                cmd = SON([("replSetReconfig", new_config.get_document()),
                           ("force", force)])
                log_info("Executing the following command on server '%s':"
                         "\n%s" % (target.id, document_pretty_string(cmd)))
                await target.disconnecting_command("admin", cmd)
                log_info("Re-configuration command for replica set '%s' "
                         "issued successfully." % self.id)
                return new_config

            except (OperationFailure, ConnectionFailure,
                    TransientCommandError) as e:
                if not (isinstance(e, TransientCommandError) or
                        is_transient_replset_error(e)):
                    raise ReconfigureRejectedError(
                        "Replica set '%s' rejected the new configuration. "
                        "Cause: %s" % (self.id, e), cause=e)

                delay = next(delays, None)
                if delay is None:
                    raise TransientCommandError(
                        "Unable to reconfigure replica set '%s' after %s "
                        "attempts. Cause: %s" %
                        (self.id, self._settings.reconfigure_attempts, e),
                        cause=e)

                log_warning("Reconfigure of replica set '%s' failed: %s. "
                            "Retrying in %.1f sec..." % (self.id, e, delay))
                await asyncio.sleep(delay)

    ###########################################################################
    async def _wait_for_config_version(self, config):
        await self.wait_for_primary()

        servers = [server for server in self._servers
                   if config.has_member(server.address)]

        async def got_the_memo():
            statuses = await self.get_member_statuses(servers)
            reachable = [status for server, status in statuses
                         if status is not None]
            return reachable and all(status.get("setVersion", 0) >=
                                     config.version for status in reachable)

        log_verbose("Waiting for members of '%s' to see config version %s" %
                    (self.id, config.version))
        if not await self._poll(got_the_memo):
            raise ElectionTimeoutError("New config version %s of replica set"
                                       " '%s' not detected" %
                                       (config.version, self.id))

    ###########################################################################
    async def add_member(self, spec, return_immediately=False, force=False):
        spec = member_spec_from_document(spec)
        log_info("Adding member '%s' to replica set '%s'..." %
                 (spec.address, self.id))

        server = self._add_member_server(spec)
        try:
            await server.purge()
            await server.start()

            current_config = await self.configuration(
                await self._get_command_target(force))
            new_config = current_config.with_member(
                spec.to_member_document(current_config.max_member_id() + 1))

            new_config = await self.reconfigure(new_config,
                                                return_immediately=True,
                                                force=force)
        except Exception as e:
            log_exception(e)
            log_warning("Unable to add member '%s' to replica set '%s'. "
                        "Discarding it" % (spec.address, self.id))
            self._discard_member_server(server)
            await server.stop()
            raise

        if not return_immediately:
            await self._wait_for_member_visible(server, spec, new_config)
            if spec.can_vote():
                await self.wait_for_primary()

        log_info("Member '%s' added to replica set '%s'" %
                 (spec.address, self.id))
        return server

    ###########################################################################
    async def _wait_for_member_visible(self, server, spec, config):
        address = server.address

        def in_view(status):
            if status.get("setVersion", 0) < config.version:
                return False
            # hidden members are not listed by isMaster
            if spec.hidden:
                return True
            return address in (status.get("hosts", []) +
                               status.get("passives", []) +
                               status.get("arbiters", []))

        async def is_visible():
            statuses = await self.get_member_statuses()
            return all(status is not None and in_view(status)
                       for _, status in statuses)

        if not await self._poll(is_visible):
            raise ElectionTimeoutError("Member '%s' did not become visible "
                                       "to all members of '%s'" %
                                       (address, self.id))

    ###########################################################################
    async def remove_member(self, server, return_immediately=False,
                            force=False):
        server = self._resolve_server(server)
        log_info("Removing member '%s' from replica set '%s'..." %
                 (server.id, self.id))

        current_config = await self.configuration(
            await self._get_command_target(force))
        if not current_config.has_member(server.address):
            raise MemberNotFoundError("'%s' is not a member of replica set "
                                      "'%s'" % (server.id, self.id))

        await self.reconfigure(current_config.without_member(server.address),
                               return_immediately=return_immediately,
                               force=force)

        self._discard_member_server(server)
        await server.stop()
        await server.purge()
        log_info("Member '%s' removed from replica set '%s'" %
                 (server.id, self.id))

    ###########################################################################
    def _resolve_server(self, server):
        if isinstance(server, str):
            address = server
        else:
            address = server.address

        resolved = self.get_server_by_address(address)
        if resolved is None:
            raise MemberNotFoundError("'%s' is not a member of replica set "
                                      "'%s'" % (address, self.id))
        return resolved

    ###########################################################################
    # Elections and maintenance
    ###########################################################################
    async def step_down_primary(self, return_immediately=False,
                                step_down_secs=60, force=False):
        old_primary = await self.wait_for_primary()
        cmd = SON([("replSetStepDown", step_down_secs), ("force", force)])

        log_info("Stepping down primary '%s' of replica set '%s'..." %
                 (old_primary.id, self.id))
        log_db_command(cmd)
        await old_primary.disconnecting_command("admin", cmd)

        if return_immediately:
            return None

        async def has_new_primary():
            new_primary = await self.primary()
            if new_primary is not None and new_primary is not old_primary:
                return new_primary

        new_primary = await self._poll(has_new_primary)
        if new_primary is None:
            raise ElectionTimeoutError("No new primary elected in replica set"
                                       " '%s' after step down of '%s'" %
                                       (self.id, old_primary.id))

        log_info("Server '%s' is primary now!" % new_primary.id)
        return new_primary

    ###########################################################################
    async def maintenance(self, enable, server, return_immediately=False):
        server = self._resolve_server(server)
        cmd = SON([("replSetMaintenance", bool(enable))])

        log_info("%s maintenance mode on '%s'..." %
                 ("Enabling" if enable else "Disabling", server.id))
        log_db_command(cmd)
        await server.execute_command("admin", cmd)

        if return_immediately:
            return

        async def is_toggled():
            role = get_member_role(await self._safe_ismaster(server))
            if enable:
                return role != MemberRole.SECONDARY
            return role == MemberRole.SECONDARY

        if not await self._poll(is_toggled):
            raise ElectionTimeoutError("Member '%s' did not %s maintenance "
                                       "mode in time" %
                                       (server.id,
                                        "enter" if enable else "leave"))
