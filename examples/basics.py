import sys

import vow
vow.init(sys.argv[1] if len(sys.argv) > 1 else 'queue')

from vow import Promise, Rejection, InvalidYieldException
from vow.stack import eventloop

@vow.o
def square(x):
    yield Promise.resolve(None)
    return x*x

@vow.o
def fail():
    raise Exception("boo")
    print((yield square(2)))

@vow.o
def invalid_yield():
    yield "this should fail"

@vow.o
def main():
    value = yield square(5)
    print(value)
    try:
        yield fail()
    except Exception as e:
        print("Caught exception:", type(e), str(e))

    try:
        yield invalid_yield()
    except InvalidYieldException as e:
        print("Caught exception:", type(e), str(e))
    else:
        assert False

    try:
        yield Promise.reject("a plain reason")
    except Rejection as e:
        print("Caught rejection:", repr(e.reason))

    values = yield Promise.all([square(2), square(3), 42])
    print(values)

vow.launch(main).finally_(lambda: eventloop.halt())
eventloop.run()
