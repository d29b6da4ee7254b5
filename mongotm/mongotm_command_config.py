#
# The MIT License
#
# Copyright (c) 2012 ObjectLabs Corporation
#
# Permission is hereby granted, free of charge, to any person obtaining
# a copy of this software and associated documentation files (the
# "Software"), to deal in the Software without restriction, including
# without limitation the rights to use, copy, modify, merge, publish,
# distribute, sublicense, and/or sell copies of the Software, and to
# permit persons to whom the Software is furnished to do so, subject to
# the following conditions:
#
# The above copyright notice and this permission notice shall be
# included in all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND,
# EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF
# MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND
# NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE
# LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION
# OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION
# WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.
#

__author__ = 'abdul'

from mongotm.version import MONGOTM_VERSION

MONGOTM_PARSER_DEF = {
    "prog": "mongotm",
    "usage": "Usage: mongotm [<options>] <command> [<command-args>]",
    "description": "Starts throw-away MongoDB replica sets and sharded "
                   "clusters for testing.",
    "args": [
        {
            "name": "mongotmVerbose",
            "type": "optional",
            "help": "make mongotm more verbose",
            "cmd_arg": [
                "-v",
                "--verbose"
            ],
            "action": "store_true",
            "default": False
        },
        {
            "name": "logDir",
            "type": "optional",
            "help": "directory to write mongotm.log to",
            "cmd_arg": [
                "--log-dir"
            ],
            "default": None
        },
        {
            "name": "version",
            "type": "optional",
            "cmd_arg": "--version",
            "help": "print version",
            "action": "version",
            "version": "mongotm %s" % MONGOTM_VERSION
        }
    ],

    "children": [

        #### run ####
        {
            "prog": "run",
            "shortDescription": "run a topology",
            "description": "Purges and starts the topology described in a "
                           "JSON file, prints its connection string and "
                           "keeps it running until interrupted.",
            "function": "mongotm.commands.topology.run.run_command",
            "args": [
                {
                    "name": "topologyFile",
                    "type": "positional",
                    "displayName": "TOPOLOGY_FILE",
                    "help": "path to a topology JSON file"
                }
            ]
        },

        #### show ####
        {
            "prog": "show",
            "shortDescription": "show a topology",
            "description": "Prints the shape of a topology and the command "
                           "line of each of its servers without starting "
                           "anything.",
            "function": "mongotm.commands.topology.show.show_command",
            "args": [
                {
                    "name": "topologyFile",
                    "type": "positional",
                    "displayName": "TOPOLOGY_FILE",
                    "help": "path to a topology JSON file"
                }
            ]
        },

        #### version ####
        {
            "prog": "version",
            "shortDescription": "show mongod version",
            "description": "Prints the version of mongod and whether it "
                           "was built with ssl.",
            "function": "mongotm.commands.misc.version.version_command",
            "args": [
                {
                    "name": "mongod",
                    "type": "optional",
                    "cmd_arg": "--mongod",
                    "displayName": "PATH",
                    "help": "mongod executable to probe; defaults to the "
                            "mongod in PATH",
                    "default": None
                }
            ]
        }
    ]
}
