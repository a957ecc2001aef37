from vow.core import get_eventloop
from vow.deferred import Deferred


def sleep(seconds):
    d = Deferred()
    get_eventloop().queue_task(seconds, d.resolve, None)
    return d.promise
