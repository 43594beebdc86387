"""
TimeLedger - Transfer Entry

The amount-entry engine behind the "transfer between accounts" form of
a personal finance ledger.

DESIGN PRINCIPLES:
1. The keypad buffer is the source of truth; numbers are derived from it
2. The two legs of a transfer are always consistent (unless the user
   explicitly takes manual control)
3. Bad input is refused or coerced, never raised at the user
4. Every save, refusal and rate change is auditable
5. Storage and exchange rates are swappable ports
"""

__version__ = "1.0.0"
__author__ = "TimeLedger Team"
