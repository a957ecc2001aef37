import pytest

from vow import use_eventloop
from vow.queue_stack.eventloop import EventLoop


class FakeClock(object):
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def evlp(clock):
    loop = EventLoop(clock=clock, sleep=clock.sleep)
    previous = use_eventloop(loop)
    yield loop
    use_eventloop(previous)
