import sys

import vow
from vow import _o
vow.init(sys.argv[1] if len(sys.argv) > 1 else 'queue')

from vow.stack import eventloop
from vow.experimental import Channel

@_o
def main():
    s = 2
    ch = Channel(s)
    for i in range(s):
        print(i)
        yield ch.send(i)

    print(ch.bufsize, len(ch._msgs))
    for i in range(s):
        print((yield ch.recv()))
    print("done")
    eventloop.halt()

vow.launch(main)
eventloop.run()
