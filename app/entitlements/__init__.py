"""
Entitlements app - what a confirmed payment grants.

A Membership may be shared by several subjects through its link rows; a
TrainingPurchase belongs to exactly one user. Both are created once per
checkout session and later receive a proof of payment.
"""
