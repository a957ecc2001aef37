VERSION = "0.1.0"

_stack_name = None


def init(stack_name):
    """Pick the event loop backend: 'queue', 'tornado' or 'twisted'.

    Must be called before vow.stack.eventloop is first imported.
    """
    global _stack_name
    _stack_name = stack_name


from vow.core import (PENDING, FULFILLED, REJECTED, Promise, Rejection,
                      ConstructionError, NotIterableError, CyclicAdoptionError,
                      InvalidYieldException, is_thenable, o, _o, launch,
                      log_exception, use_eventloop, get_eventloop)
