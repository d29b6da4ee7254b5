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

from mongotm.errors import TopologyException, ConfigOrderError
from mongotm.objects.cluster import ClusterState
from mongotm.objects.config_servers import ConfigServerCluster
from mongotm.objects.replicaset_cluster import ReplicaSetCluster
from mongotm.objects.sharded_cluster import ShardedCluster
from mongotm.tests.fake_mongo import FakeMongoWorld
from mongotm.tests.test_base import TopologyTestBase


###############################################################################
class ShardedClusterTest(TopologyTestBase):

    ###########################################################################
    def make_cluster(self):
        return ShardedCluster(**self.topology_kwargs())

    ###########################################################################
    async def make_full_cluster(self, shard_count=3, proxy_count=2):
        cluster = self.make_cluster()
        for i in range(shard_count):
            cluster.add_shard(self.member_docs(2), "shard%s" % i)
        await cluster.add_configuration_servers(self.member_docs(3))
        cluster.add_proxies([self.member_doc(dbpath=False)
                             for _ in range(proxy_count)])
        return cluster

    ###########################################################################
    def all_servers(self, cluster):
        servers = []
        for shard in cluster.get_shards():
            servers.extend(shard.get_servers())
        servers.extend(cluster.get_config_servers().get_servers())
        servers.extend(cluster.get_proxies())
        return servers

    ###########################################################################
    async def test_proxies_need_config_servers(self):
        cluster = self.make_cluster()
        cluster.add_shard(self.member_docs(1), "shard0")
        with self.assertRaises(ConfigOrderError):
            cluster.add_proxies([self.member_doc(dbpath=False)])
        self.assertEqual(cluster.get_proxies(), [])

    ###########################################################################
    async def test_start_stop(self):
        cluster = await self.make_full_cluster()
        self.assertTrue(cluster.config_servers_replicated)
        self.assertIsInstance(cluster.get_config_servers(), ReplicaSetCluster)

        config_servers = cluster.get_config_servers()
        proxies = cluster.get_proxies()
        for proxy in proxies:
            self.assertEqual(proxy.get_config_db_address(),
                             config_servers.url())
            self.assertTrue(proxy.get_config_db_address().startswith(
                "configRepl/"))

        await cluster.start()
        self.assertEqual(cluster.state, ClusterState.RUNNING)
        self.assertEqual(cluster.url(),
                         ",".join(proxy.address for proxy in proxies))
        for server in self.all_servers(cluster):
            self.assertTrue(server.is_running())

        add_shards = self.world.commands_named("addShard")
        self.assertEqual([cmd["addShard"] for _, cmd in add_shards],
                         [shard.shard_url() for shard in cluster.get_shards()])
        self.assertTrue(all(address == proxies[0].address
                            for address, _ in add_shards))

        # the config replica set is initiated as a config server replica set
        initiates = [cmd["replSetInitiate"] for _, cmd in
                     self.world.commands_named("replSetInitiate")]
        config_initiate = [c for c in initiates if c["_id"] == "configRepl"]
        self.assertEqual(len(config_initiate), 1)
        self.assertTrue(config_initiate[0]["configsvr"])

        await cluster.stop()
        self.assertEqual(cluster.state, ClusterState.STOPPED)
        self.assert_all_stopped(self.all_servers(cluster))
        self.assertEqual(self.world.running_nodes(), [])

        # stopping a stopped cluster is a no-op
        shutdowns = len(self.world.commands_named("shutdown"))
        await cluster.stop()
        self.assertEqual(len(self.world.commands_named("shutdown")), shutdowns)

    ###########################################################################
    async def test_config_servers_ignore_arbiter_flag(self):
        cluster = self.make_cluster()
        member_docs = self.member_docs(3)
        member_docs[2]["arbiter"] = True
        config_servers = await cluster.add_configuration_servers(
            member_docs, repl_set="cfg")

        self.assertEqual(config_servers.id, "cfg")
        config = config_servers.make_initial_config()
        self.assertTrue(config.get_property("configsvr"))
        self.assertFalse(any(m.get("arbiterOnly") for m in config.members))
        for server in config_servers.get_servers():
            self.assertTrue(server.is_config_server())

    ###########################################################################
    async def test_discover_is_cached(self):
        cluster = self.make_cluster()
        version_info = await cluster.discover()
        self.assertEqual(version_info.version, [3, 2, 1])
        await cluster.add_configuration_servers(self.member_docs(3))
        await cluster.discover()
        self.assertEqual(self.world.version_probes, 1)

    ###########################################################################
    async def test_config_servers_set_once(self):
        cluster = self.make_cluster()
        await cluster.add_configuration_servers(self.member_docs(3))
        with self.assertRaises(TopologyException):
            await cluster.add_configuration_servers(self.member_docs(3))

    ###########################################################################
    async def test_explicit_configdb(self):
        cluster = self.make_cluster()
        config_servers = await cluster.add_configuration_servers(
            self.member_docs(3))
        proxy_doc = self.member_doc(dbpath=False)
        proxy_doc["options"]["configdb"] = ",".join(
            config_servers.get_addresses())
        proxy = cluster.add_proxies([proxy_doc])[0]
        self.assertEqual(proxy.get_config_db_address(), config_servers.url())

    ###########################################################################
    async def test_shard_settings(self):
        cluster = self.make_cluster()
        shard = cluster.add_shard(self.member_docs(1), "shard0",
                                  settings={"retryWaitMS": 7})
        self.assertEqual(shard.settings.retry_wait_ms, 7)
        self.assertEqual(shard.settings.start_timeout_ms,
                         self.settings.start_timeout_ms)
        for server in shard.get_servers():
            self.assertEqual(server.settings.retry_wait_ms, 7)

    ###########################################################################
    async def test_start_requires_config_servers_and_proxies(self):
        cluster = self.make_cluster()
        cluster.add_shard(self.member_docs(1), "shard0")
        with self.assertRaises(TopologyException):
            await cluster.start()

        await cluster.add_configuration_servers(self.member_docs(3))
        with self.assertRaises(TopologyException):
            await cluster.start()
        self.assertEqual(self.world.spawned, [])

    ###########################################################################
    async def test_sharding_commands(self):
        cluster = await self.make_full_cluster(shard_count=1, proxy_count=1)
        await cluster.start()

        await cluster.enable_sharding("test")
        await cluster.shard_collection("test", "users", {"_id": 1},
                                       unique=True)
        await cluster.shard_collection("test", "events", {"ts": 1})

        proxy = cluster.get_proxies()[0]
        enable = self.world.commands_named("enableSharding")
        self.assertEqual(enable, [(proxy.address, {"enableSharding": "test"})])
        shard_collection = self.world.commands_named("shardCollection")
        self.assertEqual(shard_collection[0][1],
                         {"shardCollection": "test.users",
                          "key": {"_id": 1},
                          "unique": True})
        # unique is only sent when asked for
        self.assertEqual(shard_collection[1][1],
                         {"shardCollection": "test.events", "key": {"ts": 1}})
        self.assertNotIn("unique", shard_collection[1][1])
        await cluster.stop()

    ###########################################################################
    async def test_restart(self):
        # restart is assumed to be a stop followed by a start
        cluster = await self.make_full_cluster(shard_count=2, proxy_count=1)
        await cluster.start()
        await cluster.restart()

        self.assertEqual(cluster.state, ClusterState.RUNNING)
        self.assertEqual(len(self.world.commands_named("addShard")), 4)
        for server in self.all_servers(cluster):
            self.assertTrue(server.is_running())
        await cluster.stop()
        self.assert_all_stopped(self.all_servers(cluster))

    ###########################################################################
    async def test_state_events_are_relayed(self):
        cluster = await self.make_full_cluster(shard_count=1, proxy_count=1)
        events = []
        cluster.add_state_listener(events.append)

        await cluster.start()
        await cluster.stop()

        kinds = set(event.kind for event in events)
        self.assertIn("MongodServer", kinds)
        self.assertIn("MongosServer", kinds)
        self.assertIn("ReplicaSetCluster", kinds)
        top_level = [event.state for event in events
                     if event.kind == "ShardedCluster"]
        self.assertEqual(top_level, [ClusterState.RUNNING,
                                     ClusterState.STOPPED])


###############################################################################
class LegacyShardedClusterTest(TopologyTestBase):

    ###########################################################################
    def make_world(self):
        return FakeMongoWorld(version_output="db version v3.0.9\n")

    ###########################################################################
    async def test_legacy_config_servers(self):
        cluster = ShardedCluster(**self.topology_kwargs())
        cluster.add_shard(self.member_docs(2), "shard0")
        config_servers = await cluster.add_configuration_servers(
            self.member_docs(3))

        self.assertFalse(cluster.config_servers_replicated)
        self.assertIsInstance(config_servers, ConfigServerCluster)

        proxy = cluster.add_proxies([self.member_doc(dbpath=False)])[0]
        self.assertEqual(proxy.get_config_db_address(),
                         ",".join(config_servers.get_addresses()))
        self.assertNotIn("/", proxy.get_config_db_address())

        await cluster.start()
        self.assertEqual(cluster.state, ClusterState.RUNNING)
        initiated = [cmd["replSetInitiate"]["_id"] for _, cmd in
                     self.world.commands_named("replSetInitiate")]
        self.assertEqual(initiated, ["shard0"])

        await cluster.stop()
        self.assertEqual(self.world.running_nodes(), [])
