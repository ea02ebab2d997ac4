import threading


class LifecycleCoordinator:
    """
    Cross-thread control signals: the current generation id plus the
    interrupt, pause, resize and shutdown flags.

    Every field is read and written independently and never waited on.
    Workers poll it at their checkpoints (before each send, before each
    receive-driven unit of work), which keeps cancellation latency bounded
    by one unit of work regardless of what the other threads are doing.
    """

    def __init__(self):
        # Only the orchestrator advances the generation; a plain int
        # rebind is atomic for the readers.
        self._generation = 0
        self._interrupt = threading.Event()
        self._pause = threading.Event()
        self._resize = threading.Event()
        self._shutdown = threading.Event()

    # Generation id

    @property
    def generation(self) -> int:
        return self._generation

    def new_generation(self) -> int:
        self._generation += 1
        return self._generation

    def is_current(self, generation: int) -> bool:
        """True while a worker tagged with `generation` may keep working."""
        return (
            generation == self._generation
            and not self._interrupt.is_set()
            and not self._shutdown.is_set()
        )

    def stop_check(self, generation: int):
        """Cancellation callable handed to algorithms and channel sends."""
        return lambda: not self.is_current(generation)

    # Flags

    def interrupt(self):
        self._interrupt.set()

    def clear_interrupt(self):
        self._interrupt.clear()

    def set_paused(self, paused: bool):
        if paused:
            self._pause.set()
        else:
            self._pause.clear()

    @property
    def paused(self) -> bool:
        return self._pause.is_set()

    def request_resize(self):
        self._resize.set()

    def take_resize(self) -> bool:
        """Reads and clears the resize flag."""
        if self._resize.is_set():
            self._resize.clear()
            return True
        return False

    def shutdown(self):
        self._shutdown.set()
        self._interrupt.set()

    @property
    def shutting_down(self) -> bool:
        return self._shutdown.is_set()
