__author__ = 'abdul'

import asyncio
import os
import signal

from mongotm.mongotm_logging import log_verbose, log_exception
from mongotm.utils import which

###############################################################################
__child_subprocesses__ = []


###############################################################################
# ProcessLauncher Class
###############################################################################
class ProcessLauncher(object):
    """
    Spawns server processes with asyncio and keeps track of them so they can
    be killed if the owning program goes away.
    """

    ###########################################################################
    async def spawn(self, command, output_path=None):
        executable = which(command[0])
        if executable is None:
            raise FileNotFoundError("No executable '%s' found in PATH" %
                                    command[0])

        output = asyncio.subprocess.DEVNULL
        output_file = None
        if output_path:
            output_file = open(output_path, "ab")
            output = output_file

        try:
            child_process = await asyncio.create_subprocess_exec(
                executable, *command[1:],
                stdin=asyncio.subprocess.DEVNULL,
                stdout=output,
                stderr=asyncio.subprocess.STDOUT,
                preexec_fn=_server_process_preexec)
        finally:
            # the child holds its own descriptor now
            if output_file is not None:
                output_file.close()

        register_child_process(child_process)
        return child_process

    ###########################################################################
    async def run(self, command):
        """
        Runs the command to completion and returns (returncode, stdout, stderr)
        """
        child_process = await asyncio.create_subprocess_exec(
            *command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE)

        stdout, stderr = await child_process.communicate()
        return (child_process.returncode,
                stdout.decode("utf-8", "replace"),
                stderr.decode("utf-8", "replace"))


###############################################################################
def _server_process_preexec():
    """ make the server ignore ctrl+c signals so that shutdown is driven by
        the topology rather than by the terminal
    """
    signal.signal(signal.SIGINT, signal.SIG_IGN)
    os.setpgrp()

###############################################################################
def get_child_processes():
    return __child_subprocesses__

###############################################################################
def register_child_process(child_process):
    # forget children that already exited
    __child_subprocesses__[:] = [p for p in __child_subprocesses__
                                 if p.returncode is None]
    __child_subprocesses__.append(child_process)

###############################################################################
def kill_child_processes():
    for child_process in get_child_processes():
        try:
            if child_process.returncode is None:
                log_verbose("Killing child process '%s'" % child_process.pid)
                child_process.kill()
        except ProcessLookupError as e:
            log_exception(e)

    del __child_subprocesses__[:]
