import time
import heapq
import logging
import itertools
import threading
from collections import deque

from vow.stack import Task

__all__ = ['EventLoop', 'evlp', 'queue_task', 'run', 'halt']

log = logging.getLogger("vow.stack.queue")


class EventLoop(object):
    """
    A plain Python event loop: a FIFO of ready tasks and a heap of
    timers.  Tasks queued with no delay run in the order they were
    queued, after whatever is running now.
    """
    def __init__(self, clock=time.monotonic, sleep=time.sleep):
        self._clock = clock
        self._sleep = sleep
        self._running = False
        self._ready = deque()
        self._timers = []
        self._seq = itertools.count()
        self._lock = threading.Lock()
        self._wakeup = threading.Event()

    def queue_task(self, delay, callable, *args, **kw):
        task = Task(callable, args, kw)
        with self._lock:
            if delay <= 0:
                self._ready.append(task)
            else:
                when = self._clock() + delay
                heapq.heappush(self._timers, (when, next(self._seq), task))
        self._wakeup.set()
        return task

    def _promote_timers(self):
        now = self._clock()
        with self._lock:
            while self._timers and self._timers[0][0] <= now:
                when, seq, task = heapq.heappop(self._timers)
                self._ready.append(task)

    def _next_ready(self):
        with self._lock:
            if self._ready:
                return self._ready.popleft()
            return None

    def run_until_idle(self):
        """Run ready tasks, including ones they queue, until none are left.

        Timers that aren't due yet are left alone.  Returns the number of
        tasks run.
        """
        count = 0
        self._promote_timers()
        while True:
            task = self._next_ready()
            if task is None:
                return count
            task()
            count += 1

    def has_pending(self):
        with self._lock:
            return bool(self._ready or
                        any(not t.cancelled for _, _, t in self._timers))

    def run(self):
        """Run until halted, or until there is nothing left to do."""
        self._running = True
        log.debug("queue loop starting")
        try:
            while self._running:
                self.run_until_idle()
                if not self._running:
                    break
                with self._lock:
                    if self._ready:
                        continue
                    while self._timers and self._timers[0][2].cancelled:
                        heapq.heappop(self._timers)
                    if not self._timers:
                        break
                    timeout = self._timers[0][0] - self._clock()
                    self._wakeup.clear()
                if timeout > 0:
                    self._sleep_until(timeout)
        finally:
            self._running = False
            log.debug("queue loop stopped")

    def _sleep_until(self, timeout):
        if self._sleep is time.sleep:
            # a task queued from another thread cuts the wait short
            self._wakeup.wait(timeout)
        else:
            self._sleep(timeout)

    def halt(self):
        self._running = False
        self._wakeup.set()

evlp = EventLoop()
queue_task = evlp.queue_task
run = evlp.run
halt = evlp.halt
