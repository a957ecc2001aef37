# -*- coding: utf-8 -*-

from collections import deque

from vow.core import Promise
from vow.deferred import Deferred


# Go-style channels
class Channel(object):
    def __init__(self, bufsize=0):
        self.bufsize = bufsize
        self._msgs = deque()
        self._recv_ds = deque()
        self._send_ds = deque()

    def send(self, value):
        if self._recv_ds:
            # if there are receivers waiting, send to the first one
            self._recv_ds.popleft().resolve(value)
        elif len(self._msgs) < self.bufsize:
            # if there's available buffer, use that
            self._msgs.append(value)
        else:
            # otherwise, wait for a receiver
            d = Deferred()
            self._send_ds.append((d, value))
            return d.promise
        return Promise.resolve(None)

    def recv(self):
        # if there's buffer, read it, and let a waiting sender refill it
        if self._msgs:
            value = self._msgs.popleft()
            if self._send_ds:
                d, pending = self._send_ds.popleft()
                self._msgs.append(pending)
                d.resolve(None)
            return Promise.resolve(value)

        # otherwise we need a sender
        if self._send_ds:
            d, value = self._send_ds.popleft()
            d.resolve(None)
            return Promise.resolve(value)

        d = Deferred()
        self._recv_ds.append(d)
        return d.promise


def first_of(*items):
    """
    Settle with whichever item settles first: (index, value) if it
    fulfils, its reason if it rejects.  The others are left running.
    """
    def executor(resolve, reject):
        for i, item in enumerate(items):
            def won(value, i=i):
                resolve((i, value))
            Promise.resolve(item).then(won, reject)
    return Promise(executor)
