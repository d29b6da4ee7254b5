__author__ = 'abdul'

import json
import os

from typing import NamedTuple, Optional, Mapping

from bson import json_util

from mongotm.mongotm_logging import log_verbose
from mongotm.errors import ConfigurationError
from mongotm.utils import resolve_path, is_valid_member_address

###############################################################################
# CONSTS
###############################################################################
DEFAULT_MONGOD = "mongod"

DEFAULT_MONGOS = "mongos"

DEFAULT_HOST = "localhost"

# This is mongodb's default port
DEFAULT_PORT = 27017


###############################################################################
# Settings
###############################################################################
class Settings(NamedTuple):
    # server process startup/shutdown
    start_timeout_ms: int = 60000
    stop_grace_ms: int = 15000
    poll_interval_ms: int = 500

    # replica set convergence
    election_timeout_ms: int = 60000
    retry_wait_ms: int = 1000
    reconfigure_attempts: int = 5
    reconfigure_backoff_ms: int = 500

    # mongos re-execution while shards are being discovered
    router_retry_attempts: int = 5
    router_backoff_ms: int = 500
    router_max_backoff_ms: int = 8000

    # extra pymongo client options (ssl etc.)
    client_options: Optional[Mapping] = None


# json document key => Settings field
SETTINGS_KEYS = {
    "startTimeoutMS": "start_timeout_ms",
    "stopGraceMS": "stop_grace_ms",
    "pollIntervalMS": "poll_interval_ms",
    "electionCycleWaitMS": "election_timeout_ms",
    "retryWaitMS": "retry_wait_ms",
    "reconfigureAttempts": "reconfigure_attempts",
    "reconfigureBackoffMS": "reconfigure_backoff_ms",
    "routerRetryAttempts": "router_retry_attempts",
    "routerBackoffMS": "router_backoff_ms",
    "routerMaxBackoffMS": "router_max_backoff_ms",
    "clientOptions": "client_options"
}

###############################################################################
def settings_from_document(doc, base=None):
    settings = base or Settings()
    if not doc:
        return settings

    overrides = {}
    for key, value in doc.items():
        field = SETTINGS_KEYS.get(key)
        if field is None:
            raise ConfigurationError("Unknown setting '%s'. Valid settings "
                                     "are %s" % (key, sorted(SETTINGS_KEYS)))
        if field == "client_options":
            if not isinstance(value, dict):
                raise ConfigurationError("'clientOptions' must be a document")
            value = dict(value)
        elif not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise ConfigurationError("Setting '%s' must be a non-negative "
                                     "integer, got %r" % (key, value))
        overrides[field] = value

    return settings._replace(**overrides)


###############################################################################
# MemberSpec
###############################################################################
class MemberSpec(NamedTuple):
    options: Mapping
    arbiter: bool = False
    priority: Optional[float] = None
    hidden: bool = False
    votes: Optional[int] = None
    tags: Optional[Mapping] = None

    ###########################################################################
    @property
    def host(self):
        bind_ip = self.options.get("bind_ip") or DEFAULT_HOST
        # bind_ip could be a comma separated list
        return bind_ip.split(",")[0].strip()

    ###########################################################################
    @property
    def port(self):
        return int(self.options.get("port") or DEFAULT_PORT)

    ###########################################################################
    @property
    def address(self):
        return "%s:%s" % (self.host, self.port)

    ###########################################################################
    def can_vote(self):
        return self.votes != 0

    ###########################################################################
    def can_become_primary(self):
        return (not self.arbiter and not self.hidden and
                self.priority != 0)

    ###########################################################################
    def with_options(self, **overrides):
        options = dict(self.options)
        options.update(overrides)
        return self._replace(options=options)

    ###########################################################################
    def without_options(self, *names):
        options = dict((k, v) for k, v in self.options.items()
                       if k not in names)
        return self._replace(options=options)

    ###########################################################################
    def to_member_document(self, member_id):
        """
        Returns the member document for replSetInitiate/replSetReconfig
        """
        member_doc = {"_id": member_id, "host": self.address}
        if self.arbiter:
            member_doc["arbiterOnly"] = True
        if self.priority is not None:
            member_doc["priority"] = self.priority
        if self.hidden:
            member_doc["hidden"] = True
            # hidden members must have priority 0
            member_doc["priority"] = 0
        if self.votes is not None:
            member_doc["votes"] = self.votes
        if self.tags:
            member_doc["tags"] = dict(self.tags)

        return member_doc


MEMBER_SPEC_KEYS = ["options", "arbiter", "priority", "hidden", "votes",
                    "tags"]

###############################################################################
def member_spec_from_document(doc):
    if isinstance(doc, MemberSpec):
        return doc

    if not isinstance(doc, dict):
        raise ConfigurationError("Invalid member %r: must be a document" % doc)

    unknown = set(doc.keys()) - set(MEMBER_SPEC_KEYS)
    if unknown:
        raise ConfigurationError("Invalid member keys %s. Valid keys are %s" %
                                 (sorted(unknown), MEMBER_SPEC_KEYS))

    options = dict(doc.get("options") or {})
    if "dbpath" in options:
        options["dbpath"] = resolve_path(options["dbpath"])

    spec = MemberSpec(options=options,
                      arbiter=bool(doc.get("arbiter", False)),
                      priority=doc.get("priority"),
                      hidden=bool(doc.get("hidden", False)),
                      votes=doc.get("votes"),
                      tags=doc.get("tags"))

    if not is_valid_member_address(spec.address):
        raise ConfigurationError("Invalid member address '%s'" % spec.address)

    return spec

###############################################################################
def member_specs_from_documents(docs):
    return [member_spec_from_document(doc) for doc in docs or []]


###############################################################################
# Config files
###############################################################################
def read_config_json(name, path):

    try:
        log_verbose("Reading %s configuration"
                    " from '%s'..." % (name, path))

        path = resolve_path(path)
        if not os.path.isfile(path):
            raise ConfigurationError("Config file %s does not exist." % path)

        with open(path) as config_file:
            json_val = json.load(config_file,
                                 object_hook=json_util.object_hook)

        if not isinstance(json_val, dict) or not json_val:
            raise ConfigurationError("Unable to load %s "
                                     "config file: %s" % (name, path))
        else:
            return json_val
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError("Unable to load %s "
                                 "config file: %s: %s" % (name, path, e),
                                 cause=e)
