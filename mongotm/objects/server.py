__author__ = 'abdul'

import asyncio
import os

from bson.son import SON
from pymongo.errors import AutoReconnect, ConnectionFailure, OperationFailure

from mongotm.objects.base import StateEmitter
from mongotm.client import MongoCommandClient
from mongotm.config import Settings, DEFAULT_HOST, DEFAULT_PORT
from mongotm.errors import ProcessStartError, PurgeConflictError
from mongotm.mongodb_version import parse_version_output
from mongotm.processes import ProcessLauncher
from mongotm.utils import (
    options_to_command_args, start_command_display, wait_for, remove_dir,
    ensure_dir, resolve_path
)
from mongotm.mongotm_logging import (
    log_info, log_verbose, log_warning, log_exception, log_error
)

###############################################################################
# CONSTANTS
###############################################################################

# stdout/stderr of the server process go to this file in the dbpath
PROCESS_LOG_FILE_NAME = "process.log"

# options that make no sense for a process we keep a handle to
UNSUPPORTED_OPTIONS = ["fork"]


###############################################################################
class ServerState(object):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


###############################################################################
# Server Class
###############################################################################
class Server(StateEmitter):
    """
    Handle to one mongod/mongos process started by this program.
    """

    ###########################################################################
    # Constructor
    ###########################################################################
    def __init__(self, binary, options, settings=None, launcher=None,
                 client_factory=None):
        super(Server, self).__init__()
        self._binary = binary
        self._options = dict(options)
        self._settings = settings or Settings()
        self._launcher = launcher or ProcessLauncher()
        self._client_factory = client_factory or MongoCommandClient
        self._client = None
        self._process = None
        self._state = ServerState.STOPPED
        self.last_status = None

    ###########################################################################
    # Properties
    ###########################################################################
    @property
    def binary(self):
        return self._binary

    ###########################################################################
    @property
    def options(self):
        return dict(self._options)

    ###########################################################################
    @property
    def settings(self):
        return self._settings

    ###########################################################################
    @property
    def host(self):
        bind_ip = self._options.get("bind_ip") or DEFAULT_HOST
        return bind_ip.split(",")[0].strip()

    ###########################################################################
    @property
    def port(self):
        return int(self._options.get("port") or DEFAULT_PORT)

    ###########################################################################
    @property
    def address(self):
        return "%s:%s" % (self.host, self.port)

    ###########################################################################
    @property
    def id(self):
        return self.address

    ###########################################################################
    @property
    def state(self):
        return self._state

    ###########################################################################
    @property
    def pid(self):
        return self._process.pid if self._process is not None else None

    ###########################################################################
    def get_display_name(self):
        return self.address

    ###########################################################################
    def get_cmd_option(self, option_name):
        return self._options.get(option_name)

    ###########################################################################
    def get_db_path(self):
        dbpath = self.get_cmd_option("dbpath")
        if dbpath:
            return resolve_path(dbpath)

    ###########################################################################
    def get_process_log_path(self):
        dbpath = self.get_db_path()
        if dbpath:
            return os.path.join(dbpath, PROCESS_LOG_FILE_NAME)

    ###########################################################################
    def export_cmd_options(self):
        cmd_options = dict(self._options)
        for option_name in UNSUPPORTED_OPTIONS:
            cmd_options.pop(option_name, None)

        if "dbpath" in cmd_options:
            cmd_options["dbpath"] = self.get_db_path()

        return cmd_options

    ###########################################################################
    def get_start_command(self):
        return [self._binary] + options_to_command_args(
            self.export_cmd_options())

    ###########################################################################
    def _set_state(self, state):
        self._state = state
        self.emit_state(state)

    ###########################################################################
    def is_running(self):
        return self._process is not None and self._process.returncode is None

    ###########################################################################
    # Lifecycle
    ###########################################################################
    async def start(self):
        if self.is_running():
            log_verbose("Server '%s' is already running" % self.id)
            return

        self._set_state(ServerState.STARTING)
        command = self.get_start_command()
        log_info("Starting server '%s'..." % self.id)
        log_verbose("Executing command:\n%s" % start_command_display(command))

        try:
            if self.get_db_path():
                ensure_dir(self.get_db_path())
            self._process = await self._launcher.spawn(
                command, output_path=self.get_process_log_path())
        except Exception as e:
            log_exception(e)
            self._set_state(ServerState.STOPPED)
            raise ProcessStartError("Unable to start server '%s'. Cause: %s" %
                                    (self.id, e), cause=e)

        log_verbose("Server '%s' started with pid %s. Waiting for it to "
                    "accept connections..." % (self.id, self.pid))

        async def is_up():
            if self._process.returncode is not None:
                return True
            return await self.is_online()

        up = await wait_for(is_up,
                            timeout=self._settings.start_timeout_ms / 1000.0,
                            sleep_duration=self._settings.poll_interval_ms /
                                           1000.0)

        if self._process.returncode is not None:
            returncode = self._process.returncode
            self._process = None
            self._set_state(ServerState.STOPPED)
            raise ProcessStartError("Server '%s' exited with code %s while "
                                    "starting. See '%s' for details" %
                                    (self.id, returncode,
                                     self.get_process_log_path()))
        if not up:
            log_error("Server '%s' did not answer within %s ms. Killing it" %
                      (self.id, self._settings.start_timeout_ms))
            await self._kill()
            self._set_state(ServerState.STOPPED)
            raise ProcessStartError("Timed out waiting for server '%s' to "
                                    "start" % self.id)

        log_info("Server '%s' is running on pid %s" % (self.id, self.pid))
        self._set_state(ServerState.RUNNING)

    ###########################################################################
    async def stop(self):
        if not self.is_running():
            log_verbose("Server '%s' is not running" % self.id)
            self._process = None
            if self._state != ServerState.STOPPED:
                self._set_state(ServerState.STOPPED)
            return

        self._set_state(ServerState.STOPPING)
        log_info("Stopping server '%s' (pid=%s)..." % (self.id, self.pid))

        grace_secs = self._settings.stop_grace_ms / 1000.0
        try:
            await self.disconnecting_command(
                "admin", SON([("shutdown", 1), ("force", True)]))
        except (OperationFailure, ConnectionFailure) as e:
            log_exception(e)
            log_warning("Shutdown command failed on server '%s': %s" %
                        (self.id, e))

        if not await self._wait_for_exit(grace_secs):
            log_warning("Server '%s' did not exit after shutdown. "
                        "Sending SIGTERM..." % self.id)
            self._process.terminate()
            if not await self._wait_for_exit(grace_secs):
                await self._kill()

        log_info("Server '%s' stopped" % self.id)
        self._process = None
        self.close_client()
        self._set_state(ServerState.STOPPED)

    ###########################################################################
    async def _wait_for_exit(self, timeout):
        try:
            await asyncio.wait_for(self._process.wait(), timeout)
            return True
        except asyncio.TimeoutError:
            return False

    ###########################################################################
    async def _kill(self):
        if self._process.returncode is None:
            log_warning("Killing server '%s' (pid=%s)" % (self.id, self.pid))
            self._process.kill()
            await self._process.wait()
        self._process = None
        self.close_client()

    ###########################################################################
    async def purge(self):
        if self.is_running() or self._state == ServerState.STARTING:
            raise PurgeConflictError("Cannot purge server '%s' while it is "
                                     "%s" % (self.id, self._state))

        dbpath = self.get_db_path()
        if not dbpath:
            log_verbose("Server '%s' has no dbpath. Nothing to purge" %
                        self.id)
            return

        log_info("Purging data directory '%s' of server '%s'" %
                 (dbpath, self.id))
        await remove_dir(dbpath)
        ensure_dir(dbpath)

    ###########################################################################
    async def probe_version(self):
        command = [self._binary, "--version"]
        try:
            returncode, stdout, stderr = await self._launcher.run(command)
        except OSError as e:
            raise ProcessStartError("Unable to run '%s'. Cause: %s" %
                                    (" ".join(command), e), cause=e)

        log_verbose("'%s' exited with code %s" % (" ".join(command),
                                                  returncode))
        version_info = parse_version_output(stdout, stderr)
        log_verbose("Discovered %s version %s" % (self._binary, version_info))
        return version_info

    ###########################################################################
    # DB Methods
    ###########################################################################
    def get_client(self):
        if self._client is None:
            self._client = self._client_factory(
                self.address, self._settings.client_options)
        return self._client

    ###########################################################################
    def close_client(self):
        if self._client is not None:
            self._client.close()
        self._client = None

    ###########################################################################
    async def execute_command(self, dbname, cmd, credentials=None):
        return await self.get_client().command(dbname, cmd,
                                               credentials=credentials)

    ###########################################################################
    async def disconnecting_command(self, dbname, cmd):
        try:
            return await self.execute_command(dbname, cmd)
        except AutoReconnect as e:
            log_verbose("This is an expected exception that happens after "
                        "disconnecting db commands: %s" % e)
        finally:
            self.close_client()

    ###########################################################################
    async def ismaster(self):
        self.last_status = await self.execute_command(
            "admin", SON([("isMaster", 1)]))
        return self.last_status

    ###########################################################################
    async def is_online(self):
        try:
            await self.ismaster()
            return True
        except (ConnectionFailure, OperationFailure) as e:
            log_verbose("Server '%s' is not answering yet: %s" % (self.id, e))
            self.close_client()
            return False
