"""
=============================================================================
PROCESS GROUP
=============================================================================

Runs N identical server processes on one port (pre-fork deployment).

=============================================================================
HOW IT WORKS
=============================================================================

    master (this process)
       │  start N children, then supervise
       ├──▶ child 0 ─ HTTPServer ─ bind :8080 (SO_REUSEPORT) ─ accept ...
       ├──▶ child 1 ─ HTTPServer ─ bind :8080 (SO_REUSEPORT) ─ accept ...
       └──▶ child N ─ ...

Every child binds the same port with SO_REUSEPORT and the kernel spreads
incoming connections between them. The children share nothing: each has
its own thread pool and stat executor, and the pipeline keeps no state
between requests, so no coordination is needed. This sidesteps the GIL for
CPU-bound work such as gzip.

The master restarts a child that dies and, on SIGINT/SIGTERM, terminates
the children (each shuts down gracefully on SIGTERM) and waits for them.

=============================================================================
"""

import logging
import multiprocessing
import signal
import threading
import time
from typing import Callable, List

from ..config import ServerConfig


logger = logging.getLogger(__name__)


class ProcessGroup:
    """
    Supervises `config.processes` children, each running `target(config)`.

    `target` must be a module-level function so it can be pickled for the
    "spawn" start method.
    """

    def __init__(
        self,
        config: ServerConfig,
        target: Callable[[ServerConfig], None],
        poll_interval: float = 1.0,
    ):
        self.config = config
        self.target = target
        self.poll_interval = poll_interval
        self.processes: List[multiprocessing.Process] = []
        self._stop = threading.Event()

    def _spawn(self, index: int) -> multiprocessing.Process:
        process = multiprocessing.Process(
            target=self.target,
            args=(self.config,),
            name=f"assetserver-{index}",
        )
        process.start()
        logger.info("Started worker process %d (pid %s)", index, process.pid)
        return process

    def start(self) -> None:
        """Start the children and supervise them until stop() or a signal."""
        self.processes = [self._spawn(i) for i in range(self.config.processes)]

        if threading.current_thread() is threading.main_thread():
            for sig in (signal.SIGINT, signal.SIGTERM):
                signal.signal(sig, self._on_signal)

        try:
            while not self._stop.wait(self.poll_interval):
                for i, process in enumerate(self.processes):
                    if not process.is_alive():
                        logger.error(
                            "Worker process %d exited with %s, restarting",
                            i, process.exitcode,
                        )
                        self.processes[i] = self._spawn(i)
        finally:
            self._terminate()

    def _on_signal(self, signum, frame) -> None:
        logger.info("Received %s, stopping worker processes", signal.Signals(signum).name)
        self.stop()

    def stop(self) -> None:
        self._stop.set()

    def _terminate(self, timeout: float = 10.0) -> None:
        for process in self.processes:
            if process.is_alive():
                process.terminate()

        deadline = time.time() + timeout
        for process in self.processes:
            process.join(max(0.0, deadline - time.time()))
            if process.is_alive():
                logger.warning("Worker process %s did not stop, killing it", process.pid)
                process.kill()
                process.join()

        logger.info("All worker processes stopped")
