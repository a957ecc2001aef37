from twisted.python.failure import Failure
from twisted.internet.defer import Deferred

from vow.core import Promise, _as_exception, _reason_of


def promise_to_deferred(promise):
    df = Deferred()
    def call_deferred_back(v, df=df):
        df.callback(v)
    def call_deferred_err(r, df=df):
        e = _as_exception(r)
        df.errback(Failure(e, type(e), e.__traceback__))
    promise.then(call_deferred_back, call_deferred_err)
    return df


def deferred_to_promise(df):
    def executor(resolve, reject):
        def callback(v):
            resolve(v)
            return v
        # the failure is handed over to the promise, so the Deferred
        # doesn't report it as unhandled
        def errback(f):
            reject(_reason_of(f.value))
        df.addCallbacks(callback, errback)
    return Promise(executor)
