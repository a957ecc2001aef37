import logging
import threading

import tornado.ioloop

from vow.stack import Task

__all__ = ['EventLoop', 'evlp', 'queue_task', 'run', 'halt']

log = logging.getLogger("vow.stack.tornado")


class EventLoop(object):
    """
    Zero-delay tasks go through IOLoop.add_callback, which runs them
    in FIFO order on the next loop iteration; timers use call_later.

    Without an explicit io_loop, the loop thread is the one that
    created this object (or last called run()), and the IOLoop is that
    thread's current one, looked up at first use.  A first use from any
    other thread needs io_loop passed in.
    """
    def __init__(self, io_loop=None):
        self._io_loop = io_loop
        self._thread_ident = threading.get_ident()

    @property
    def _tornado_ioloop(self):
        if self._io_loop is None:
            if threading.get_ident() != self._thread_ident:
                raise RuntimeError("tornado EventLoop first used off its "
                                   "loop thread; pass io_loop explicitly")
            self._io_loop = tornado.ioloop.IOLoop.current()
        return self._io_loop

    def queue_task(self, delay, callable, *args, **kw):
        task = Task(callable, args, kw)
        io_loop = self._tornado_ioloop
        if delay <= 0:
            io_loop.add_callback(task)
        elif threading.get_ident() != self._thread_ident:
            # call_later isn't thread-safe; add_callback is
            io_loop.add_callback(io_loop.call_later, delay, task)
        else:
            io_loop.call_later(delay, task)
        return task

    def run(self):
        self._thread_ident = threading.get_ident()
        log.debug("tornado loop starting")
        self._tornado_ioloop.start()

    def halt(self):
        self._tornado_ioloop.stop()

evlp = EventLoop()
queue_task = evlp.queue_task
run = evlp.run
halt = evlp.halt
