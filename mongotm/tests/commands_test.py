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

import asyncio
import json
import os
import unittest

from mongotm import mongotm_logging
from mongotm.commands.command_utils import (
    build_topology, get_topology_servers, get_topology_url
)
from mongotm.commands.topology.run import run_topology, run_command
from mongotm.commands.topology.show import show_topology, show_command
from mongotm.commands.misc.version import version_command
from mongotm.errors import ConfigurationError, ProcessStartError
from mongotm.mongotm import main, get_mongotm_cmd_parser
from mongotm.objects.replicaset_cluster import ReplicaSetCluster
from mongotm.objects.sharded_cluster import ShardedCluster
from mongotm.tests.test_base import TopologyTestBase

# settings document matching test_base.TEST_SETTINGS
TEST_SETTINGS_DOC = {
    "startTimeoutMS": 500,
    "stopGraceMS": 50,
    "pollIntervalMS": 1,
    "electionCycleWaitMS": 1000,
    "retryWaitMS": 1,
    "reconfigureAttempts": 3,
    "reconfigureBackoffMS": 1,
    "routerRetryAttempts": 4,
    "routerBackoffMS": 1,
    "routerMaxBackoffMS": 4
}


###############################################################################
class TopologyCommandsTest(TopologyTestBase):

    ###########################################################################
    def replicaset_doc(self, count=3):
        return {
            "settings": TEST_SETTINGS_DOC,
            "replicaSet": {"name": "rs0", "members": self.member_docs(count)}
        }

    ###########################################################################
    def sharded_doc(self):
        return {
            "settings": TEST_SETTINGS_DOC,
            "shards": [{"name": "shard0", "members": self.member_docs(2)},
                       {"name": "shard1", "members": self.member_docs(1),
                        "settings": {"retryWaitMS": 2}}],
            "configServers": {"name": "cfg", "members": self.member_docs(3)},
            "proxies": [self.member_doc(dbpath=False)]
        }

    ###########################################################################
    def write_topology(self, doc):
        path = os.path.join(self.test_dir, "topology.json")
        with open(path, "w") as f:
            json.dump(doc, f)
        return path

    ###########################################################################
    def plugs(self):
        return {"launcher": self.world.launcher(),
                "client_factory": self.world.client_factory}

    ###########################################################################
    async def test_build_replicaset(self):
        topology = await build_topology(self.replicaset_doc(), **self.plugs())
        self.assertIsInstance(topology, ReplicaSetCluster)
        self.assertEqual(topology.id, "rs0")
        self.assertEqual(topology.settings.start_timeout_ms, 500)
        self.assertEqual(len(get_topology_servers(topology)), 3)
        addresses = ",".join(topology.get_addresses())
        self.assertEqual(get_topology_url(topology),
                         "mongodb://%s/?replicaSet=rs0" % addresses)

    ###########################################################################
    async def test_build_sharded_cluster(self):
        topology = await build_topology(self.sharded_doc(), **self.plugs())
        self.assertIsInstance(topology, ShardedCluster)
        self.assertEqual([shard.id for shard in topology.get_shards()],
                         ["shard0", "shard1"])
        self.assertEqual(topology.get_shards()[1].settings.retry_wait_ms, 2)
        self.assertEqual(topology.get_config_servers().id, "cfg")
        self.assertEqual(len(get_topology_servers(topology)), 7)
        self.assertEqual(get_topology_url(topology),
                         "mongodb://%s" % topology.get_proxies()[0].address)

    ###########################################################################
    async def test_bad_topologies(self):
        sharded = self.sharded_doc()
        bad_docs = [
            {"replicaSet": {"members": self.member_docs(1)}},
            {"settings": TEST_SETTINGS_DOC},
            {"replicaSet": {"name": "rs", "members": self.member_docs(1)},
             "shards": sharded["shards"]},
            {"shards": sharded["shards"], "proxies": sharded["proxies"]},
            {"shards": sharded["shards"],
             "configServers": sharded["configServers"]},
            dict(sharded, bogus=1)
        ]
        for doc in bad_docs:
            with self.assertRaises(ConfigurationError):
                await build_topology(doc, **self.plugs())
        self.assertEqual(self.world.spawned, [])

    ###########################################################################
    async def test_show_topology(self):
        path = self.write_topology(self.sharded_doc())
        lines = await show_topology(path, **self.plugs())

        self.assertEqual(lines[0], "Sharded cluster 'shardedCluster'")
        self.assertIn("  Proxies", lines)
        self.assertTrue(any(line.strip().startswith("Config replica set")
                            for line in lines))
        self.assertTrue(any("--replSet shard0" in line for line in lines))
        # nothing is started
        self.assertEqual(self.world.spawned, [])

    ###########################################################################
    async def test_run_replicaset(self):
        path = self.write_topology(self.replicaset_doc())
        stop_event = asyncio.Event()
        stop_event.set()

        url = await run_topology(path, stop_event=stop_event, **self.plugs())

        self.assertTrue(url.startswith("mongodb://localhost:"))
        self.assertTrue(url.endswith("/?replicaSet=rs0"))
        self.assertEqual(len(self.world.commands_named("replSetInitiate")), 1)
        self.assertEqual(self.world.running_nodes(), [])

    ###########################################################################
    async def test_run_sharded_cluster(self):
        path = self.write_topology(self.sharded_doc())
        stop_event = asyncio.Event()
        stop_event.set()

        url = await run_topology(path, stop_event=stop_event, **self.plugs())

        self.assertTrue(url.startswith("mongodb://localhost:"))
        self.assertEqual(len(self.world.commands_named("addShard")), 2)
        self.assertEqual(self.world.running_nodes(), [])

    ###########################################################################
    async def test_run_stops_servers_on_failure(self):
        self.world.missing_binaries.add("mongos")
        path = self.write_topology(self.sharded_doc())

        with self.assertRaises(ProcessStartError):
            await run_topology(path, stop_event=asyncio.Event(),
                               **self.plugs())
        self.assertGreater(len(self.world.spawned), 0)
        self.assertEqual(self.world.running_nodes(), [])


###############################################################################
class CommandLineTest(unittest.TestCase):

    def setUp(self):
        self.parser = get_mongotm_cmd_parser()

    def tearDown(self):
        mongotm_logging.setup_logging(log_to_stdout=False)

    def test_parse_commands(self):
        parsed = self.parser.parse_args(["run", "topology.json"])
        self.assertEqual(parsed.topologyFile, "topology.json")
        self.assertIs(parsed.func, run_command)
        self.assertFalse(parsed.mongotmVerbose)
        self.assertIsNone(parsed.logDir)

        parsed = self.parser.parse_args(["-v", "--log-dir", "/tmp/logs",
                                         "show", "topology.json"])
        self.assertIs(parsed.func, show_command)
        self.assertTrue(parsed.mongotmVerbose)
        self.assertEqual(parsed.logDir, "/tmp/logs")

        parsed = self.parser.parse_args(["version", "--mongod", "/opt/mongod"])
        self.assertIs(parsed.func, version_command)
        self.assertEqual(parsed.mongod, "/opt/mongod")

    def test_bad_command_line(self):
        with self.assertRaises(SystemExit):
            self.parser.parse_args(["explode"])
        with self.assertRaises(SystemExit):
            self.parser.parse_args(["run"])

    def test_main_reports_errors(self):
        with self.assertRaises(SystemExit) as context:
            main(["show", "/no/such/topology.json"])
        self.assertEqual(context.exception.code, 1)

        with self.assertRaises(SystemExit) as context:
            main(["version", "--mongod", "/no/such/mongod"])
        self.assertEqual(context.exception.code, 1)
