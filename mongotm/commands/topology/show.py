__author__ = 'abdul'

import asyncio

from mongotm.commands.command_utils import (
    load_topology_document, build_topology
)
from mongotm.objects.sharded_cluster import ShardedCluster
from mongotm.utils import start_command_display
from mongotm.mongotm_logging import stdout_log


###############################################################################
# show command
###############################################################################
def show_command(parsed_options):
    asyncio.run(show_topology(parsed_options.topologyFile))

###############################################################################
async def show_topology(topology_path, launcher=None, client_factory=None):
    """
    Prints the shape of the topology and the command line of every server
    without starting anything
    """
    topology = await build_topology(load_topology_document(topology_path),
                                    launcher=launcher,
                                    client_factory=client_factory)
    lines = describe_topology(topology)
    for line in lines:
        stdout_log(line)
    return lines

###############################################################################
def describe_topology(topology):
    if not isinstance(topology, ShardedCluster):
        return describe_cluster("Replica set", topology)

    lines = ["Sharded cluster '%s'" % topology.id]
    for shard in topology.get_shards():
        lines.extend(describe_cluster("Shard", shard, indent="  "))

    config_servers = topology.get_config_servers()
    kind = ("Config replica set" if topology.config_servers_replicated
            else "Legacy config servers")
    lines.extend(describe_cluster(kind, config_servers, indent="  "))

    lines.append("  Proxies")
    for proxy in topology.get_proxies():
        lines.append(describe_server(proxy, indent="    "))
    return lines

###############################################################################
def describe_cluster(kind, cluster, indent=""):
    lines = ["%s%s '%s' (%s)" % (indent, kind, cluster.id, cluster.url())]
    for server in cluster.get_servers():
        lines.append(describe_server(server, indent=indent + "  "))
    return lines

###############################################################################
def describe_server(server, indent=""):
    return "%s%s: %s" % (indent, server.address,
                         start_command_display(server.get_start_command()))
