"""storedesk: order lifecycle, inventory and reporting rules for the shop back office."""

__version__ = "0.1.0"
