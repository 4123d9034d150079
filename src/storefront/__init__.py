"""Storefront order workflow: intake, payment reconciliation and shipment tracking."""
