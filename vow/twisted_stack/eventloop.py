import sys
import logging
import threading
from collections import deque

from vow.stack import Task

__all__ = ['EventLoop', 'evlp', 'queue_task', 'run', 'halt']

log = logging.getLogger("vow.stack.twisted")

# prefer fast reactors
if not "twisted.internet.reactor" in sys.modules:
    try:
        from twisted.internet import epollreactor
        epollreactor.install()
    except Exception:
        try:
            from twisted.internet import kqreactor
            kqreactor.install()
        except Exception:
            try:
                from twisted.internet import pollreactor
                pollreactor.install()
            except Exception:
                pass

from twisted.internet.error import ReactorNotRunning


# thanks to Peter Norvig
def singleton(object, message="singleton class already instantiated",
              instantiated=[]):
    """
    Raise an exception if an object of this class has been instantiated before.
    """
    assert object.__class__ not in instantiated, message
    instantiated.append(object.__class__)


class EventLoop(object):
    """
    Timers go straight to reactor.callLater.  Zero-delay tasks are kept
    in our own FIFO, drained by a single callLater(0), since the reactor
    doesn't promise an order between calls due at the same moment.

    `reactor` defaults to the global twisted reactor, of which there can
    only be one; anything providing callLater (twisted.internet.task.Clock,
    say) can be passed instead.
    """
    def __init__(self, reactor=None):
        if reactor is None:
            singleton(self, "Twisted can only have one EventLoop (reactor)")
            from twisted.internet import reactor
        self._reactor = reactor
        self._halted = False
        self._ready = deque()
        self._drain_scheduled = False
        self._thread_ident = threading.get_ident()

    def _drain(self):
        self._drain_scheduled = False
        # tasks queued while draining wait for the next round
        for _ in range(len(self._ready)):
            self._ready.popleft()()

    def _queue_ready(self, task):
        self._ready.append(task)
        if not self._drain_scheduled:
            self._drain_scheduled = True
            self._reactor.callLater(0, self._drain)

    def queue_task(self, delay, callable, *args, **kw):
        task = Task(callable, args, kw)
        if delay <= 0:
            queue = self._queue_ready
            args = (task,)
        else:
            queue = self._reactor.callLater
            args = (delay, task)
        if threading.get_ident() != self._thread_ident:
            self._reactor.callFromThread(queue, *args)
        else:
            queue(*args)
        return task

    def run(self):
        if not self._halted:
            self._thread_ident = threading.get_ident()
            log.debug("twisted reactor starting")
            self._reactor.run()

    def halt(self):
        try:
            self._reactor.stop()
        except ReactorNotRunning:
            self._halted = True

evlp = EventLoop()
queue_task = evlp.queue_task
run = evlp.run
halt = evlp.halt
