from vow.core import launch


class Task(object):
    """A queued call, which can be cancelled until it runs."""
    def __init__(self, callable, args, kw):
        self._callable = callable
        self._args = args
        self._kw = kw
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def __call__(self):
        if self.cancelled:
            return None
        return launch(self._callable, *self._args, **self._kw)

    def __repr__(self):
        return "<%s.%s object at 0x%x; callable: %r%s>" % (
            self.__class__.__module__, self.__class__.__name__, id(self),
            self._callable, "; cancelled" if self.cancelled else "")
