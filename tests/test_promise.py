from unittest.mock import Mock

import pytest

from vow import (Promise, Rejection, ConstructionError, CyclicAdoptionError,
                 PENDING, FULFILLED, REJECTED)
from vow.deferred import Deferred

value = 'Awesome value'
reason = 'Unlawful reason'


def later(evlp, func, *args):
    evlp.queue_task(0.01, func, *args)


def resolving_later(evlp, v):
    return Promise(lambda resolve, reject: later(evlp, resolve, v))


def rejecting_later(evlp, r):
    return Promise(lambda resolve, reject: later(evlp, reject, r))


class Thenable(object):
    def __init__(self, *outcomes):
        self.outcomes = outcomes

    def then(self, on_success, on_failure):
        for kind, payload in self.outcomes:
            if kind == 'raise':
                raise payload
            (on_success if kind == 'ok' else on_failure)(payload)


def test_construction_requires_executor():
    with pytest.raises(ConstructionError):
        Promise()
    with pytest.raises(ConstructionError):
        Promise(42)


def test_executor_runs_synchronously(evlp):
    calls = []
    Promise(lambda resolve, reject: calls.append('executor'))
    assert calls == ['executor']


def test_executor_exception_rejects(evlp):
    error = ValueError('boom')

    def executor(resolve, reject):
        raise error

    p = Promise(executor)
    assert p.state == REJECTED
    assert p.reason is error


def test_executor_exception_after_resolve_is_ignored(evlp):
    def executor(resolve, reject):
        resolve(value)
        raise ValueError('too late')

    p = Promise(executor)
    assert p.state == FULFILLED
    assert p.value == value


def test_executor_raising_rejection_rejects_with_reason(evlp):
    def executor(resolve, reject):
        raise Rejection(reason)

    assert Promise(executor).reason == reason


def test_value_and_reason_are_exclusive(evlp):
    fulfilled = Promise.resolve(value)
    assert fulfilled.value == value
    assert not hasattr(fulfilled, 'reason')

    rejected = Promise.reject(reason)
    assert rejected.reason == reason
    assert not hasattr(rejected, 'value')

    pending = Deferred().promise
    assert pending.state == PENDING
    assert not hasattr(pending, 'value')
    assert not hasattr(pending, 'reason')


def test_only_first_settlement_counts(evlp):
    def executor(resolve, reject):
        resolve(1)
        reject('nope')
        resolve(2)

    p = Promise(executor)
    assert p.state == FULFILLED
    assert p.value == 1

    def executor(resolve, reject):
        reject('first')
        reject('second')
        resolve(3)

    p = Promise(executor)
    assert p.reason == 'first'


def test_resolving_with_pending_promise_locks_in(evlp):
    d = Deferred()
    outer = Deferred()
    outer.resolve(d.promise)
    outer.reject('ignored')
    assert outer.promise.state == PENDING

    d.resolve(value)
    evlp.run_until_idle()
    assert outer.promise.value == value


def test_run_success_handler_when_resolved(evlp):
    on_success = Mock(return_value=None)
    Promise.resolve(value).then(on_success)
    evlp.run()
    on_success.assert_called_once_with(value)


def test_run_success_handler_asynchronously(evlp):
    result = []

    def handler(v):
        result.append('first')

    Promise(lambda resolve, reject: resolve(1)).then(handler)
    result.append('second')
    assert result == ['second']
    evlp.run()
    assert result == ['second', 'first']


def test_run_handlers_when_settled_asynchronously(evlp):
    on_success = Mock(return_value=None)
    on_failure = Mock(return_value=None)
    resolving_later(evlp, value).then(on_success)
    rejecting_later(evlp, reason).then(None, on_failure)
    evlp.run()
    on_success.assert_called_once_with(value)
    on_failure.assert_called_once_with(reason)


def test_all_subscribers_run_in_order(evlp):
    d = Deferred()
    order = []
    for name in ['a', 'b', 'c']:
        d.promise.then(lambda v, name=name: order.append((name, v)))
    d.resolve(1)
    assert order == []
    evlp.run()
    assert order == [('a', 1), ('b', 1), ('c', 1)]


def test_subscribers_on_rejection_run_in_order(evlp):
    d = Deferred()
    order = []
    d.promise.catch(lambda r: order.append('a'))
    d.promise.then(lambda v: order.append('wrong'), lambda r: order.append('b'))
    d.reject(reason)
    evlp.run()
    assert order == ['a', 'b']


def test_unwrap_chaining(evlp):
    seen = []
    Promise.resolve(1) \
        .then(lambda v: Promise.resolve(v + 1)) \
        .then(seen.append)
    evlp.run()
    assert seen == [2]


def test_chaining_where_success_handlers_return_pending_promises(evlp):
    seen = []

    def first(v):
        seen.append(v)
        return 'second'

    def second(v):
        seen.append(v)
        return resolving_later(evlp, 'third')

    resolving_later(evlp, 'first').then(first).then(second).then(seen.append)
    evlp.run()
    assert seen == ['first', 'second', 'third']


def test_chaining_where_failure_handlers_return_pending_promises(evlp):
    seen = []

    def first(r):
        seen.append(r)
        return Promise.reject('second')

    def second(r):
        seen.append(r)
        return rejecting_later(evlp, 'third')

    rejecting_later(evlp, 'first') \
        .then(None, first) \
        .then(None, second) \
        .then(None, seen.append)
    evlp.run()
    assert seen == ['first', 'second', 'third']


def test_nested_promises_unwrap_transitively(evlp):
    inner = resolving_later(evlp, value)
    middle = Promise(lambda resolve, reject: resolve(inner))
    outer = Promise(lambda resolve, reject: resolve(middle))
    seen = []
    outer.then(seen.append)
    evlp.run()
    assert seen == [value]
    assert outer.value == value


def test_missing_failure_handler_propagates_reason(evlp):
    on_failure = Mock(return_value=None)
    Promise.reject(reason).then(lambda v: 'unreached').then(None, on_failure)
    evlp.run()
    on_failure.assert_called_once_with(reason)


def test_missing_success_handler_propagates_value(evlp):
    seen = []
    Promise.resolve(value).then(None, lambda r: 'unreached').then(seen.append)
    evlp.run()
    assert seen == [value]


def test_handler_exception_rejects_downstream(evlp):
    error = KeyError('missing')

    def handler(v):
        raise error

    p = Promise.resolve(1).then(handler)
    assert p.state == PENDING
    evlp.run()
    assert p.state == REJECTED
    assert p.reason is error


def test_handler_raising_rejection_rejects_with_its_reason(evlp):
    def handler(v):
        raise Rejection(reason)

    p = Promise.resolve(1).then(handler)
    evlp.run()
    assert p.reason == reason


def test_catch_restores_chain(evlp):
    mock_resolve = Mock(return_value=None)
    mock_reject = Mock(return_value=None)
    caught = []

    Promise.resolve(value) \
        .then(lambda v: Promise.reject(reason)) \
        .catch(caught.append) \
        .then(mock_resolve, mock_reject)
    evlp.run()

    assert caught == [reason]
    assert mock_resolve.call_count == 1
    assert mock_reject.call_count == 0


def test_catch_rethrowing_keeps_chain_rejected(evlp):
    def handler(r):
        raise Rejection(r + '!')

    p = Promise.reject(reason).catch(handler)
    evlp.run()
    assert p.reason == reason + '!'


def test_finally_passes_value_through(evlp):
    calls = []
    seen = []

    def on_settled(*args):
        calls.append(args)

    Promise.resolve(5) \
        .then(lambda v: value) \
        .finally_(on_settled) \
        .then(seen.append)
    evlp.run()
    assert calls == [()]
    assert seen == [value]


def test_finally_passes_reason_through(evlp):
    calls = []
    seen = []
    Promise.reject(reason) \
        .finally_(lambda: calls.append('cleanup')) \
        .then(None, seen.append)
    evlp.run()
    assert calls == ['cleanup']
    assert seen == [reason]


def test_finally_exception_overrides_outcome(evlp):
    def on_settled():
        raise Rejection('boom')

    seen = []
    Promise.resolve(5) \
        .then(lambda v: value) \
        .finally_(on_settled) \
        .then(None, seen.append)
    evlp.run()
    assert seen == ['boom']

    p = Promise.reject(reason).finally_(on_settled)
    evlp.run()
    assert p.reason == 'boom'


def test_finally_waits_for_returned_promise(evlp):
    order = []

    def on_settled():
        return resolving_later(evlp, 'ignored').then(
            lambda v: order.append('cleanup done'))

    Promise.resolve(value).finally_(on_settled).then(order.append)
    evlp.run()
    assert order == ['cleanup done', value]


def test_finally_returned_rejection_wins(evlp):
    p = Promise.resolve(value).finally_(lambda: Promise.reject('cleanup failed'))
    evlp.run()
    assert p.reason == 'cleanup failed'


def test_finally_without_callable_passes_through(evlp):
    p = Promise.resolve(value).finally_(None)
    evlp.run()
    assert p.value == value


def test_resolve_is_idempotent(evlp):
    p = Promise.resolve(value)
    assert Promise.resolve(Promise.resolve(Promise.resolve(p))) is p


def test_resolve_wraps_plain_value(evlp):
    p = Promise.resolve(value)
    assert isinstance(p, Promise)
    assert p.value == value


def test_reject_never_unwraps(evlp):
    inner = Promise.resolve(value)
    p = Promise.reject(inner)
    seen = []
    p.catch(seen.append)
    evlp.run()
    assert seen == [inner]

    thenable = Thenable(('ok', 1))
    assert Promise.reject(thenable).reason is thenable


def test_thenable_is_adopted(evlp):
    p = Promise.resolve(Thenable(('ok', value)))
    assert p.state == PENDING
    evlp.run()
    assert p.value == value


def test_thenable_then_is_not_called_inline(evlp):
    thenable = Mock()
    Promise.resolve(thenable)
    thenable.then.assert_not_called()
    evlp.run_until_idle()
    assert thenable.then.call_count == 1


def test_thenable_first_callback_wins(evlp):
    p = Promise.resolve(Thenable(('fail', reason), ('ok', value)))
    evlp.run()
    assert p.reason == reason


def test_thenable_raising_after_callback_is_ignored(evlp):
    p = Promise.resolve(Thenable(('ok', value), ('raise', ValueError('late'))))
    evlp.run()
    assert p.value == value


def test_thenable_raising_rejects(evlp):
    error = ValueError('broken thenable')
    p = Promise.resolve(Thenable(('raise', error)))
    evlp.run()
    assert p.reason is error


def test_thenable_resolving_with_thenable_unwraps(evlp):
    p = Promise.resolve(Thenable(('ok', Thenable(('ok', value)))))
    evlp.run()
    assert p.value == value


def test_handler_returning_thenable_is_adopted(evlp):
    p = Promise.resolve(1).then(lambda v: Thenable(('fail', reason)))
    evlp.run()
    assert p.reason == reason


def test_adopting_itself_rejects(evlp):
    holder = []
    p = Promise.resolve(1).then(lambda v: holder[0])
    holder.append(p)
    evlp.run()
    assert isinstance(p.reason, CyclicAdoptionError)


def test_indirect_adoption_cycle_rejects(evlp):
    a = Deferred()
    b = Deferred()
    a.resolve(b.promise)
    b.resolve(a.promise)
    evlp.run()
    assert isinstance(b.promise.reason, CyclicAdoptionError)
    assert a.promise.reason is b.promise.reason


def test_repr_shows_state(evlp):
    assert 'pending' in repr(Deferred().promise)
    assert "value: 'x'" in repr(Promise.resolve('x'))
    assert "reason: 'y'" in repr(Promise.reject('y'))
