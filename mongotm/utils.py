__author__ = 'abdul'

import asyncio
import os
import shutil
import time
import json

from functools import partial

from bson import json_util
from mongotm.mongotm_logging import (
    log_verbose, log_error, log_exception
)


###############################################################################
def document_pretty_string(document):
    return json.dumps(document, indent=4, default=json_util.default)

###############################################################################
async def wait_for(predicate, timeout=None, sleep_duration=2):
    """
    Polls the async predicate every sleep_duration seconds until it returns
    a truthy value or timeout (seconds) elapses. Returns the last value of
    the predicate, so callers can tell a timeout apart by falsiness.
    """
    start_time = now()
    result = await predicate()

    while not result:
        net_time = now() - start_time
        if timeout is not None and net_time + sleep_duration > timeout:
            break

        left = "[-%.1f sec] " % (timeout - net_time) if timeout else ""
        log_verbose("-- waiting %s--" % left)
        await asyncio.sleep(sleep_duration)
        result = await predicate()

    return result

###############################################################################
def backoff_delays(attempts, initial_ms, max_ms=None):
    """
    Yields the delay (in seconds) to sleep before each retry of an operation
    tried at most `attempts` times. Delays double from initial_ms.
    """
    delay_ms = initial_ms
    for _ in range(max(attempts - 1, 0)):
        if max_ms is not None:
            delay_ms = min(delay_ms, max_ms)
        yield delay_ms / 1000.0
        delay_ms = delay_ms * 2

###############################################################################
async def settle_all(aws, description=None):
    """
    Runs all awaitables concurrently and waits until every one of them has
    settled. Each failure is logged; the first one (in task order) is raised.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    errors = [r for r in results if isinstance(r, BaseException)]

    for error in errors:
        log_exception(error)
        log_error("%s failed: %s" % (description or "Task", error))

    if errors:
        raise errors[0]

    return results

###############################################################################
def now():
    return time.time()

###############################################################################
# OS Functions
###############################################################################
def which(program):

    fpath, fname = os.path.split(program)
    if fpath:
        if is_exe(program):
            return program
    else:
        for path in os.environ["PATH"].split(os.pathsep):
            exe_file = os.path.join(path, program)
            if is_exe(exe_file):
                return exe_file
    return None

###############################################################################
def is_exe(fpath):
    return os.path.isfile(fpath) and os.access(fpath, os.X_OK)

###############################################################################
def ensure_dir(dir_path):
    """
    If DIR_PATH does not exist, makes it. Failing that, raises Exception.
    Returns True if dir already existed; False if it had to be made.
    """
    exists = dir_exists(dir_path)
    if not exists:
        try:
            os.makedirs(dir_path)
        except OSError as e:
            raise Exception("Unable to create directory %s. Cause %s" %
                            (dir_path, e))
    return exists

###############################################################################
def dir_exists(path):
    return os.path.exists(path) and os.path.isdir(path)

###############################################################################
async def remove_dir(dir_path):
    if not dir_exists(dir_path):
        return
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, partial(shutil.rmtree, dir_path))

###############################################################################
def resolve_path(path):
    # handle file uris
    path = path.replace("file://", "")

    # expand vars
    path = os.path.expandvars(os.path.expanduser(path))

    return os.path.abspath(path)

###############################################################################
# Command line functions
###############################################################################
def options_to_command_args(args):

    command_args = []

    for (arg_name, arg_val) in sorted(args.items()):
        # append the arg name and val as needed
        if arg_val is None or arg_val is False:
            continue
        elif arg_val is True:
            command_args.append("--%s" % arg_name)
        else:
            command_args.append("--%s" % arg_name)
            command_args.append(str(arg_val))

    return command_args

###############################################################################
PASSWORD_ARGS = ["--sslPEMKeyPassword", "--sslClusterPassword",
                 "--tlsCertificateKeyFilePassword", "--tlsClusterPassword"]

def obfuscate_password_args(command):
    result = command[:]

    for password_arg in PASSWORD_ARGS:
        if password_arg in result:
            arg_index = result.index(password_arg)
            if arg_index + 1 < len(result):
                result[arg_index + 1] = "****"

    return result

###############################################################################
def start_command_display(command):
    return " ".join(obfuscate_password_args(command))

###############################################################################
# Network Utils Functions
###############################################################################
def is_valid_member_address(address):
    if address is None:
        return False
    host_port = address.split(":")

    return (len(host_port) == 2
            and host_port[0]
            and host_port[1]
            and str(host_port[1]).isdigit())

