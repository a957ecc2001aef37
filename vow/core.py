# The coroutine driver here follows the shape of inlineCallbacks from
# Twisted.

import sys
import time
import types
import inspect
import logging
import functools

logging.basicConfig(stream=sys.stderr,
                    format="%(message)s")
log = logging.getLogger("vow")

blocking_warn_threshold = 500 # ms

PENDING = 'pending'
FULFILLED = 'fulfilled'
REJECTED = 'rejected'


class ConstructionError(TypeError):
    pass


class NotIterableError(TypeError):
    pass


class CyclicAdoptionError(TypeError):
    pass


class InvalidYieldException(Exception):
    pass


class Rejection(Exception):
    """
    Raise this from a handler or oroutine to reject with an arbitrary
    reason.  The downstream promise is rejected with `reason` itself,
    not with the Rejection wrapping it.  Rejections delivered into an
    oroutine whose reason isn't an exception arrive wrapped this way.
    """
    def __init__(self, reason):
        Exception.__init__(self, reason)
        self.reason = reason

    def __repr__(self):
        return "%s(%r)" % (self.__class__.__name__, self.reason)


def _reason_of(e):
    if isinstance(e, Rejection):
        return e.reason
    return e


def _as_exception(reason):
    if isinstance(reason, BaseException):
        return reason
    return Rejection(reason)


def is_thenable(value):
    return callable(getattr(value, 'then', None))


def _noop(*args):
    pass


def _identity(value):
    return value


def _rethrow(reason):
    raise Rejection(reason)


_eventloop = None

def use_eventloop(evlp):
    """
    Route deferred dispatch through `evlp`, anything with a
    queue_task(delay, callable, *args, **kw) method.  Returns the
    previous event loop so callers can restore it.
    """
    global _eventloop
    previous = _eventloop
    _eventloop = evlp
    return previous


def get_eventloop():
    if _eventloop is None:
        from vow.stack import eventloop
        use_eventloop(eventloop.evlp)
    return _eventloop


def _defer_call(f, *args):
    get_eventloop().queue_task(0, f, *args)


class _Continuation(object):
    __slots__ = ('on_success', 'on_failure', 'downstream')

    def __init__(self, on_success, on_failure, downstream=None):
        self.on_success = on_success
        self.on_failure = on_failure
        self.downstream = downstream


class Promise(object):
    """
    A result which is settled exactly once, as either a value or a
    failure reason.

    The executor runs immediately and receives two capabilities,
    resolve(value) and reject(reason).  Whichever is called first
    wins; later calls are ignored.  Resolving with another Promise or a
    thenable adopts it, so the promise settles only when that does.

    Handlers attached with then() always run from the event loop, never
    from inside the call that attached them, even if the promise has
    already settled::

        p = Promise(lambda resolve, reject: resolve(1))
        p.then(lambda v: log.info("got %s", v))
        log.info("this is logged first")
    """
    def __init__(self, executor=None):
        if not callable(executor):
            raise ConstructionError("Promise resolver %r is not callable" %
                                    (executor,))
        self._state = PENDING
        self._resolved = False
        self._following = None
        self._subscribers = []
        try:
            executor(self._settle_success, self._settle_failure)
        except Exception as e:
            self._settle_failure(_reason_of(e))

    def __repr__(self):
        if self._state == FULFILLED:
            detail = "; value: %r" % (self._value,)
        elif self._state == REJECTED:
            detail = "; reason: %r" % (self._reason,)
        else:
            detail = ""
        return "<%s.%s object at 0x%x; %s%s>" % (self.__class__.__module__,
                                                 self.__class__.__name__,
                                                 id(self),
                                                 self._state,
                                                 detail)

    @property
    def state(self):
        return self._state

    @property
    def value(self):
        if self._state != FULFILLED:
            raise AttributeError("%s promise has no value" % self._state)
        return self._value

    @property
    def reason(self):
        if self._state != REJECTED:
            raise AttributeError("%s promise has no reason" % self._state)
        return self._reason

    # the capabilities handed to the executor
    def _settle_success(self, value):
        if self._resolved:
            return
        self._resolved = True
        self._adopt(value)

    def _settle_failure(self, reason):
        if self._resolved:
            return
        self._resolved = True
        self._reject(reason)

    def _follows(self, value):
        while isinstance(value, Promise):
            if value is self:
                return True
            value = value._following
        return False

    def _adopt(self, value):
        if self._follows(value):
            self._reject(CyclicAdoptionError("promise cannot adopt itself"))
        elif isinstance(value, Promise):
            self._following = value
            value._subscribe(self._fulfill, self._reject)
        elif is_thenable(value):
            _defer_call(self._adopt_thenable, value)
        else:
            self._fulfill(value)

    def _adopt_thenable(self, thenable):
        called = False

        def on_success(value):
            nonlocal called
            if not called:
                called = True
                self._adopt(value)

        def on_failure(reason):
            nonlocal called
            if not called:
                called = True
                self._reject(reason)

        try:
            thenable.then(on_success, on_failure)
        except Exception as e:
            on_failure(_reason_of(e))

    def _fulfill(self, value):
        if self._state != PENDING:
            return
        self._state = FULFILLED
        self._value = value
        self._flush()

    def _reject(self, reason):
        if self._state != PENDING:
            return
        self._state = REJECTED
        self._reason = reason
        self._flush()

    def _flush(self):
        self._following = None
        subscribers, self._subscribers = self._subscribers, []
        for continuation in subscribers:
            _defer_call(self._dispatch, continuation)

    def _subscribe(self, on_success, on_failure, downstream=None):
        continuation = _Continuation(on_success, on_failure, downstream)
        if self._state == PENDING:
            self._subscribers.append(continuation)
        else:
            _defer_call(self._dispatch, continuation)
        return downstream

    def _dispatch(self, continuation):
        if self._state == FULFILLED:
            handler, payload = continuation.on_success, self._value
        else:
            handler, payload = continuation.on_failure, self._reason

        downstream = continuation.downstream
        if downstream is None:
            handler(payload)
            return

        try:
            result = handler(payload)
        except Exception as e:
            downstream._settle_failure(_reason_of(e))
        else:
            downstream._settle_success(result)

    def then(self, on_success=None, on_failure=None):
        if not callable(on_success):
            on_success = _identity
        if not callable(on_failure):
            on_failure = _rethrow
        return self._subscribe(on_success, on_failure, Promise(_noop))

    def catch(self, on_failure):
        return self.then(None, on_failure)

    def finally_(self, on_settled):
        """
        Run on_settled() once this promise settles either way, passing
        the outcome through untouched.  If on_settled raises, or returns
        a promise that rejects, the chain rejects with that instead.
        """
        if not callable(on_settled):
            return self.then()

        def passthrough_value(value):
            return Promise.resolve(on_settled()).then(lambda _: value)

        def passthrough_reason(reason):
            return Promise.resolve(on_settled()).then(lambda _: _rethrow(reason))

        return self.then(passthrough_value, passthrough_reason)

    def __await__(self):
        return (yield self)

    @classmethod
    def resolve(cls, value):
        if isinstance(value, Promise):
            return value
        return cls(lambda resolve, reject: resolve(value))

    @classmethod
    def reject(cls, reason):
        return cls(lambda resolve, reject: reject(reason))

    @classmethod
    def all(cls, items):
        """
        A promise of the list of results of `items`, in input order.

        Items may be promises, thenables or plain values.  The first
        rejection rejects the aggregate; an empty input gives [].
        """
        try:
            iterator = iter(items)
        except TypeError as e:
            raise NotIterableError("%r is not iterable" % (items,)) from e
        items = list(iterator)

        def executor(resolve, reject):
            results = [None] * len(items)
            remaining = [len(items)]

            def record(i, value):
                results[i] = value
                remaining[0] -= 1
                if remaining[0] == 0:
                    resolve(results)

            if not items:
                resolve(results)
            for i, item in enumerate(items):
                if isinstance(item, Promise) or is_thenable(item):
                    cls.resolve(item)._subscribe(functools.partial(record, i),
                                                 reject)
                else:
                    record(i, item)

        return cls(executor)


def _chain(g, resolve, reject, to_gen=None, failed=False):
    # Every resumption comes from the event loop, so there's no
    # recursion to unfold here, unlike inlineCallbacks.
    start = time.time()
    try:
        if failed:
            from_gen = g.throw(_as_exception(to_gen))
        else:
            from_gen = g.send(to_gen)
    except StopIteration as e:
        resolve(e.value)
        return
    except Exception as e:
        reject(_reason_of(e))
        return
    finally:
        duration = (time.time() - start) * 1000
        if duration > blocking_warn_threshold:
            frame = getattr(g, 'gi_frame', None) or getattr(g, 'cr_frame', None)
            if inspect.isframe(frame):
                fi = inspect.getframeinfo(frame)
                log.warning("oroutine '%s' blocked for %dms before %s:%s",
                            g.__name__, duration, fi.filename, fi.lineno)
            else:
                log.warning("oroutine '%s' blocked for %dms",
                            g.__name__, duration)

    if isinstance(from_gen, Promise) or is_thenable(from_gen):
        waiting = Promise.resolve(from_gen)
    else:
        e = InvalidYieldException(
            "Unexpected value '%s' of type '%s' yielded from o-routine '%s'.  "
            "O-routines can only yield promises and thenables." %
            (from_gen, type(from_gen), g))
        waiting = Promise.reject(e)

    waiting._subscribe(functools.partial(_chain, g, resolve, reject),
                       functools.partial(_chain, g, resolve, reject,
                                         failed=True))


def maybe_promise_oroutine(f, *args, **kw):
    try:
        result = f(*args, **kw)
    except Exception as e:
        return Promise.reject(_reason_of(e))

    if isinstance(result, (types.GeneratorType, types.CoroutineType)):
        return Promise(functools.partial(_chain, result))
    return Promise.resolve(result)


# @_o
def _o(f):
    """
    vow lets you write promise-using code that looks like a regular
    sequential function.  For example::

        @_o
        def foo():
            result = yield make_some_request_returning_a_promise()
            log.info("%s", result)

        @_o
        async def bar():
            result = await make_some_request_returning_a_promise()
            return result

    When you call anything that returns a Promise, you can simply yield
    (or await) it; the oroutine is resumed from the event loop when the
    promise settles.  A rejection is thrown in at the yield: exception
    reasons as themselves, anything else wrapped in Rejection.

    Calling the decorated function returns a Promise which fulfils with
    the oroutine's return value, or rejects with whatever it raised.
    Yielding anything other than a promise or thenable throws
    InvalidYieldException into the oroutine.
    """
    @functools.wraps(f)
    def unwind_generator(*args, **kwargs):
        return maybe_promise_oroutine(f, *args, **kwargs)
    return unwind_generator
o = _o


def log_exception(e=None):
    if e is None:
        e = sys.exc_info()[1]

    if isinstance(e, BaseException):
        log.error("%s", e, exc_info=(type(e), e, e.__traceback__))
    else:
        log.error("unhandled rejection: %r", e)


def launch(f, *args, **kwargs):
    """
    Call f, logging anything it raises instead of propagating it.  If f
    returns a promise, a rejection of that promise is logged too.
    Event loops run every task through here.
    """
    try:
        result = f(*args, **kwargs)
    except Exception:
        log_exception()
        return None
    if isinstance(result, Promise):
        result._subscribe(_noop, log_exception)
    return result
