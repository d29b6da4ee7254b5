__author__ = 'abdul'

from pymongo.errors import OperationFailure, ConnectionFailure

###############################################################################
# Mongotm Exception class
###############################################################################
class TopologyException(Exception):
    def __init__(self, message, cause=None):
        super(TopologyException, self).__init__(message)
        self._cause = cause

    @property
    def cause(self):
        return self._cause


###############################################################################
class ConfigurationError(TopologyException):
    pass

###############################################################################
class ProcessStartError(TopologyException):
    pass

###############################################################################
class VersionParseError(TopologyException):
    pass

###############################################################################
class ConfigOrderError(TopologyException):
    pass

###############################################################################
class ElectionTimeoutError(TopologyException):
    pass

###############################################################################
class TransientCommandError(TopologyException):
    pass

###############################################################################
class ReconfigureRejectedError(TopologyException):
    pass

###############################################################################
class MemberNotFoundError(TopologyException):
    pass

###############################################################################
class PurgeConflictError(TopologyException):
    pass


###############################################################################
# Server error classification
###############################################################################

# NotWritablePrimary, NotPrimaryNoSecondaryOk, NotPrimaryOrSecondary,
# InterruptedDueToReplStateChange, PrimarySteppedDown,
# ConfigurationInProgress, NotYetInitialized, CurrentConfigNotCommittedYet
TRANSIENT_REPLSET_CODES = (10107, 13435, 13436, 11602, 189, 109, 94, 308)

TRANSIENT_REPLSET_MESSAGES = ("not master", "not primary",
                              "stepping down", "interrupted")

# HostUnreachable, HostNotFound, ShardNotFound,
# FailedToSatisfyReadPreference
SHARD_NOT_KNOWN_CODES = (6, 7, 70, 133)

SHARD_NOT_KNOWN_MESSAGES = ("no such shard", "could not find host",
                            "unable to find", "shard not found")


def is_connection_error(e):
    return isinstance(e, ConnectionFailure)

###############################################################################
def is_transient_replset_error(e):
    if is_connection_error(e):
        return True

    return _matches(e, TRANSIENT_REPLSET_CODES, TRANSIENT_REPLSET_MESSAGES)

###############################################################################
def is_shard_not_known_error(e):
    if is_connection_error(e):
        return True

    return _matches(e, SHARD_NOT_KNOWN_CODES, SHARD_NOT_KNOWN_MESSAGES)

###############################################################################
def _matches(e, codes, messages):
    if not isinstance(e, OperationFailure):
        return False

    if e.code in codes:
        return True

    msg = str(e).lower()
    return any(m in msg for m in messages)
