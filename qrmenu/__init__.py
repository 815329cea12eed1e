"""
                QR Menu Ordering

Customer-facing QR table menu and the admin/cashier dashboard for a single
restaurant, served in front of the restaurant REST API with Midtrans Snap
for online payment.
"""

__version__ = "1.0.0"
