"""
Accounts app - the subject store.

Subjects own entitlements: a User (individual) or an Association. Each user
carries one status row whose code says whether they are a connected visitor
or an active member of a given tier.
"""
