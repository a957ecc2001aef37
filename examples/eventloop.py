import sys

import vow
from vow import _o
vow.init(sys.argv[1] if len(sys.argv) > 1 else 'queue')

from vow.stack import eventloop
from vow.util import sleep

@_o
def foo(x, z=1):
    yield sleep(1)
    print(x)

def bar(x, z=1):
    print(x)

@_o
def fail():
    raise Exception("whoo")
    yield sleep(1)

def stop():
    eventloop.halt()

eventloop.queue_task(0, foo, x="oroutine worked")
eventloop.queue_task(0, bar, x="function worked")
eventloop.queue_task(0, fail)
eventloop.queue_task(2, stop)
eventloop.run()
