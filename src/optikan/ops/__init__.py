"""Mutations, one module per entity kind.

Every operation is ``async def op(session, ...) -> Outcome`` and runs a
single optimistic transaction.
"""
