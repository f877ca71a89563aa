"""
Domain operations for group sets, groups, memberships and match links.

Each operation resolves its entities, asks the authorization gate, checks the
domain rules and only then writes. Failures are raised as
``app.core.errors.DomainError`` subclasses.
"""
