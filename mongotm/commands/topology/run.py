__author__ = 'abdul'

import asyncio
import signal

from mongotm.commands.command_utils import (
    load_topology_document, build_topology, get_topology_servers,
    get_topology_url
)
from mongotm.objects.cluster import ClusterState
from mongotm.objects.sharded_cluster import ShardedCluster
from mongotm.processes import kill_child_processes
from mongotm.utils import settle_all
from mongotm.mongotm_logging import log_info, stdout_log

# signals that stop a running topology
STOP_SIGNALS = [signal.SIGINT, signal.SIGTERM]


###############################################################################
# run command
###############################################################################
def run_command(parsed_options):
    try:
        asyncio.run(run_topology(parsed_options.topologyFile))
    finally:
        kill_child_processes()

###############################################################################
async def run_topology(topology_path, launcher=None, client_factory=None,
                       stop_event=None):
    """
    Purges and starts the topology, prints its url then waits for
    stop_event (SIGINT/SIGTERM by default) and stops it.
    """
    topology = await build_topology(load_topology_document(topology_path),
                                    launcher=launcher,
                                    client_factory=client_factory)

    if stop_event is None:
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in STOP_SIGNALS:
            loop.add_signal_handler(sig, stop_event.set)

    try:
        await topology.purge()
        await topology.start()
        url = get_topology_url(topology)
        stdout_log(url)
        log_info("Topology is up. Press Ctrl+C to stop it.")
        await stop_event.wait()
    finally:
        await stop_topology(topology)

    return url

###############################################################################
async def stop_topology(topology):
    if (isinstance(topology, ShardedCluster) and
            topology.state != ClusterState.RUNNING):
        # a sharded cluster that failed to start may still have running
        # servers but its stop() is a no-op
        await settle_all([server.stop()
                          for server in get_topology_servers(topology)],
                         "Stopping server")
    else:
        await topology.stop()
