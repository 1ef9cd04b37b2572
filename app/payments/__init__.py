"""
Payments app for Stripe checkout and reconciliation.

This app handles:
- The price catalog and hosted checkout sessions
- Payment confirmation from the client and from Stripe webhooks
- Proof-of-payment resolution (invoice, else charge receipt)

Related apps:
    - entitlements: Membership and training purchase records
    - accounts: Users, associations and member status
    - notifications: Confirmation emails

Usage:
    from payments.services import ReconciliationService

    result = ReconciliationService().confirm_from_client(session_id)
"""
