from vow.core import Promise


class Deferred(object):
    """
    The producer side of a Promise, for code that learns the outcome
    somewhere other than inside an executor.

        d = Deferred()
        some_callback_api(on_done=d.resolve, on_error=d.reject)
        return d.promise
    """
    def __init__(self):
        self.promise = Promise(self._executor)

    def _executor(self, resolve, reject):
        self.resolve = resolve
        self.reject = reject

    def __repr__(self):
        return "<%s.%s object at 0x%x; promise: %r>" % (
            self.__class__.__module__, self.__class__.__name__, id(self),
            self.promise)
