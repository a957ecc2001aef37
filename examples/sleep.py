import sys

import vow
from vow import _o
vow.init(sys.argv[1] if len(sys.argv) > 1 else 'queue')

from vow.stack import eventloop
from vow.util import sleep

@_o
def print_every_second():
    for i in range(5):
        print("1")
        yield sleep(1)

@_o
def print_every_two_seconds():
    for i in range(5):
        print("2")
        yield sleep(2)
    eventloop.halt()

vow.launch(print_every_second)
vow.launch(print_every_two_seconds)
eventloop.run()
