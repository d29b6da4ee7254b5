#!/usr/bin/env python

# The MIT License

# Copyright (c) 2012 ObjectLabs Corporation

# Permission is hereby granted, free of charge, to any person obtaining
# a copy of this software and associated documentation files (the
# "Software"), to deal in the Software without restriction, including
# without limitation the rights to use, copy, modify, merge, publish,
# distribute, sublicense, and/or sell copies of the Software, and to
# permit persons to whom the Software is furnished to do so, subject to
# the following conditions:

# The above copyright notice and this permission notice shall be
# included in all copies or substantial portions of the Software.

# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND,
# EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF
# MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND
# NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE
# LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION

__author__ = 'abdul'

###############################################################################
# Imports
###############################################################################

import argparse
import importlib
import logging
import sys

from mongotm.mongotm_logging import (
    log_error, log_exception, setup_logging, turn_logging_verbose_on
)
from mongotm.mongotm_command_config import MONGOTM_PARSER_DEF
from mongotm.errors import TopologyException


###############################################################################
# MAIN
###############################################################################
def main(args=None):
    if args is None:
        args = sys.argv[1:]
    try:
        return do_main(args)
    except TopologyException as e:
        log_error(e)
        log_exception(e)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(1)

###############################################################################
def do_main(args):
    parser = get_mongotm_cmd_parser()

    if len(args) < 1:
        parser.print_help()
        return

    parsed_args = parser.parse_args(args)

    setup_logging(log_level=logging.INFO, log_to_stdout=True,
                  log_dir=parsed_args.logDir)
    # turn on verbose if specified
    if parsed_args.mongotmVerbose:
        turn_logging_verbose_on()

    if getattr(parsed_args, "func", None) is None:
        parser.print_help()
        return

    return parsed_args.func(parsed_args)

###############################################################################
########################                      #################################
########################  Commandline parsing #################################
########################                      #################################
###############################################################################
def get_mongotm_cmd_parser():
    return build_parser(MONGOTM_PARSER_DEF)

###############################################################################
def build_parser(parser_def):
    parser = argparse.ArgumentParser(prog=parser_def["prog"],
                                     usage=parser_def.get("usage"),
                                     description=parser_def.get("description"))
    add_parser_args(parser, parser_def.get("args", []))

    children = parser_def.get("children")
    if children:
        subparsers = parser.add_subparsers(title="Commands",
                                           metavar="<command>")
        for child_def in children:
            child = subparsers.add_parser(
                child_def["prog"],
                help=child_def.get("shortDescription"),
                description=child_def.get("description"))
            add_parser_args(child, child_def.get("args", []))
            child.set_defaults(func=resolve_function(child_def["function"]))

    return parser

###############################################################################
def add_parser_args(parser, arg_defs):
    for arg_def in arg_defs:
        kwargs = {"help": arg_def.get("help")}
        for key in ["action", "default", "version"]:
            if key in arg_def:
                kwargs[key] = arg_def[key]

        if arg_def["type"] == "positional":
            kwargs["metavar"] = arg_def.get("displayName")
            parser.add_argument(arg_def["name"], **kwargs)
        else:
            cmd_arg = arg_def["cmd_arg"]
            if isinstance(cmd_arg, str):
                cmd_arg = [cmd_arg]
            if kwargs.get("action") is None:
                kwargs["metavar"] = arg_def.get("displayName")
            if kwargs.get("action") != "version":
                kwargs["dest"] = arg_def["name"]
            parser.add_argument(*cmd_arg, **kwargs)

###############################################################################
def resolve_function(function_path):
    module_name, function_name = function_path.rsplit(".", 1)
    return getattr(importlib.import_module(module_name), function_name)


###############################################################################
########################                   ####################################
########################     BOOTSTRAP     ####################################
########################                   ####################################
###############################################################################

if __name__ == '__main__':
    main()
