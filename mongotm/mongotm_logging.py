__author__ = 'abdul'

import sys
import os
import traceback

import logging

from logging.handlers import TimedRotatingFileHandler

###############################################################################
LOG_FILE_NAME = "mongotm.log"

logger = None

# logger settings
_log_to_stdout = False
_logging_level = logging.INFO
_log_dir = None

VERBOSE = 15
logging.addLevelName(VERBOSE, "VERBOSE")

###############################################################################
def get_logger():
    global logger

    if logger:
        return logger

    logger = logging.getLogger("MongotmLogger")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    # nothing is printed unless setup_logging() asked for it
    logger.addHandler(logging.NullHandler())

    if _log_dir:
        if not os.path.isdir(_log_dir):
            os.makedirs(_log_dir)

        formatter = logging.Formatter("%(levelname)8s | %(asctime)s | "
                                      "%(message)s")
        logfile = os.path.join(_log_dir, LOG_FILE_NAME)
        fh = TimedRotatingFileHandler(logfile, backupCount=50, when="midnight")

        fh.setFormatter(formatter)
        fh.setLevel(logging.DEBUG)
        logger.addHandler(fh)

    if _log_to_stdout:
        sh = logging.StreamHandler(sys.stdout)
        std_formatter = logging.Formatter("%(message)s")
        sh.setFormatter(std_formatter)
        sh.setLevel(_logging_level)
        logger.addHandler(sh)

    return logger

###############################################################################
def setup_logging(log_level=logging.INFO, log_to_stdout=True, log_dir=None):
    global _log_to_stdout, _logging_level, _log_dir, logger

    _log_to_stdout = log_to_stdout
    _logging_level = log_level
    _log_dir = log_dir

    # handlers are rebuilt on next use
    if logger:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger = None

###############################################################################
def turn_logging_verbose_on():
    setup_logging(log_level=VERBOSE, log_to_stdout=_log_to_stdout,
                  log_dir=_log_dir)

###############################################################################
def log_info(msg):
    get_logger().info(msg)

###############################################################################
def log_error(msg):
    get_logger().error(msg)

###############################################################################
def log_warning(msg):
    get_logger().warning(msg)

###############################################################################
def log_verbose(msg):
    get_logger().log(VERBOSE, msg)

###############################################################################
def log_debug(msg):
    get_logger().debug(msg)

###############################################################################
def log_exception(exception):
    log_debug("EXCEPTION: %s" % exception)
    log_debug("".join(traceback.format_exception(type(exception), exception,
                                                 exception.__traceback__)))

###############################################################################
def stdout_log(msg):
    print(msg)

###############################################################################
def log_db_command(cmd):
    from mongotm.utils import document_pretty_string
    log_verbose("Executing db command %s" % document_pretty_string(cmd))
