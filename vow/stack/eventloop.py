import vow

if vow._stack_name is None:
    vow.init('queue')

if vow._stack_name == 'twisted':
    from vow.twisted_stack.eventloop import *
elif vow._stack_name == 'tornado':
    from vow.tornado_stack.eventloop import *
elif vow._stack_name == 'queue':
    from vow.queue_stack.eventloop import *
else:
    raise ValueError("unknown vow stack %r" % (vow._stack_name,))
