__author__ = 'abdul'

import copy

from collections import namedtuple

from mongotm.utils import document_pretty_string
from mongotm.mongotm_logging import log_exception, log_error


###############################################################################
# Document Wrapper Class
###############################################################################
class DocumentWrapper(object):

    ###########################################################################
    # Constructor
    ###########################################################################

    def __init__(self, document):
        self.__document__ = document

    ###########################################################################
    # Overridden Methods
    ###########################################################################
    def __str__(self):
        return document_pretty_string(self.__document__)

    ###########################################################################
    def get_document(self):
        return self.__document__

    ###########################################################################
    def copy_document(self):
        return copy.deepcopy(self.__document__)

    ###########################################################################
    # Properties
    ###########################################################################
    def get_property(self, property_name, default=None):
        return self.__document__.get(property_name, default)

    ###########################################################################
    @property
    def id(self):
        return self.get_property('_id')


###############################################################################
# State notifications
###############################################################################
StateEvent = namedtuple("StateEvent", ["source", "kind", "state"])


class StateEmitter(object):
    """
    Per-component notification channel. Parents subscribe to their children
    with add_state_listener() and re-emit every event on their own channel.
    """

    ###########################################################################
    def __init__(self):
        self._state_listeners = []

    ###########################################################################
    def add_state_listener(self, listener):
        self._state_listeners.append(listener)

    ###########################################################################
    def remove_state_listener(self, listener):
        if listener in self._state_listeners:
            self._state_listeners.remove(listener)

    ###########################################################################
    def emit_state(self, state):
        self.emit_state_event(StateEvent(self.get_display_name(),
                                         self.get_kind(), state))

    ###########################################################################
    def emit_state_event(self, event):
        for listener in list(self._state_listeners):
            try:
                listener(event)
            except Exception as e:
                log_exception(e)
                log_error("State listener %s failed on %s: %s" %
                          (listener, event, e))

    ###########################################################################
    def relay_states_of(self, child):
        child.add_state_listener(self.emit_state_event)

    ###########################################################################
    def get_display_name(self):
        raise NotImplementedError("Should be implemented by subclasses")

    ###########################################################################
    def get_kind(self):
        return type(self).__name__
