# backends/__init__.py
"""
Backends the relay can bridge to.

- hrd   : Ham Radio Deluxe (binary TCP radio control, UDP ADIF logbook)
- flrig : FLRIG (XML-RPC radio control)
- n1mm  : N1MM Logger+ (UDP XML logging)
- noop  : explicit "not configured" variants
"""
