"""Command-line interface for storedesk."""

import argparse
import json
import logging
import sys
from pathlib import Path

from . import __version__
from .client import ApiClient
from .desk import Desk, InventoryDesk, OrdersDesk
from .errors import StoredeskError
from .export import export_filename
from .models import ORDER_STATUSES, Order
from .pricing import format_bdt
from .session import Session


def get_session() -> Session:
    """Get the session for the current environment."""
    return Session()


def get_client() -> ApiClient:
    """Get an API client bound to the current session."""
    return ApiClient(get_session())


def _report(desk: Desk) -> bool:
    """Print pending notices. Returns True if any of them was an error."""
    failed = False
    for notice in desk.drain_notices():
        if notice.level == "error":
            print(f"Error: {notice.message}", file=sys.stderr)
            failed = True
        else:
            print(notice.message)
    if desk.state.login_required:
        print("Run 'storedesk login --token <token>' to sign in.", file=sys.stderr)
    return failed


def format_order(order: Order) -> str:
    info = order.shipping_info
    return (
        f"  {order.order_number}  {order.status:<10}  {order.payment_status:<8}"
        f"  {format_bdt(order.total):>10}  {info.full_name} ({info.phone})"
    )


def cmd_login(args: argparse.Namespace) -> int:
    """Store an admin token and check it against the backend."""
    try:
        session = get_session()
        session.set_token(args.token)
        if not args.no_verify:
            get_client().order_stats()
        print("Logged in.")
        return 0

    except StoredeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_logout(args: argparse.Namespace) -> int:
    """Forget the stored admin token."""
    get_session().clear_token()
    print("Logged out.")
    return 0


def cmd_orders_list(args: argparse.Namespace) -> int:
    """List orders."""
    desk = OrdersDesk(get_client(), limit=args.limit)
    desk.refresh(status=args.status, search=args.search, page=args.page)
    if _report(desk):
        return 1

    if args.json:
        print(json.dumps([o.to_dict() for o in desk.orders], indent=2, ensure_ascii=False))
        return 0

    if desk.state.empty:
        print("No orders found.")
        return 0

    pagination = desk.state.pagination
    print(
        f"Orders (page {pagination.get('page', 1)} of {pagination.get('pages', 1)},"
        f" {pagination.get('total', len(desk.orders))} total):"
    )
    print()
    for order in desk.orders:
        print(format_order(order))

    stats = desk.state.stats
    if stats:
        print()
        print(
            f"Revenue: {format_bdt(stats.get('totalRevenue', 0))}"
            f"  Pending: {stats.get('pendingOrders', 0)}"
            f"  Delivered: {stats.get('deliveredOrders', 0)}"
        )
    return 0


def cmd_orders_status(args: argparse.Namespace) -> int:
    """Change an order's status."""
    client = get_client()
    desk = OrdersDesk(client)
    try:
        desk.orders = [client.get_order(args.order_id)]
    except StoredeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    ok = desk.change_status(
        desk.orders[0].id,
        args.status,
        notes=args.notes,
        tracking_number=args.tracking,
        reopen=args.reopen,
    )
    failed = _report(desk)
    return 0 if ok and not failed else 1


def cmd_orders_export(args: argparse.Namespace) -> int:
    """Export orders to CSV."""
    desk = OrdersDesk(get_client())
    desk.filters.update(status=args.status, search=args.search)
    text = desk.export_csv()
    failed = _report(desk)
    if text is None or failed:
        return 1

    output = Path(args.output or export_filename())
    output.write_text(text, encoding="utf-8")
    print(f"Exported orders to {output}")
    return 0


def cmd_inventory(args: argparse.Namespace) -> int:
    """Show the inventory report."""
    desk = InventoryDesk(get_client())
    desk.refresh(status=args.status, search=args.search)
    if _report(desk):
        return 1

    if args.json:
        data = {"items": [i.to_dict() for i in desk.items], "stats": desk.state.stats}
        print(json.dumps(data, indent=2, ensure_ascii=False))
        return 0

    if desk.state.empty:
        print("No products found.")
        return 0

    print(f"Inventory ({len(desk.items)} products):")
    print()
    for item in desk.items:
        flag = "  REORDER" if item.needs_reorder else ""
        print(
            f"  {item.sku:<12}  {item.inventory_status:<12}"
            f"  {item.available_quantity:>5} available / {item.stock_quantity:>5} in stock"
            f"  {item.title}{flag}"
        )
    return 0


def cmd_stock(args: argparse.Namespace) -> int:
    """Add or remove stock for a product."""
    desk = InventoryDesk(get_client())
    ok = desk.update_stock(args.product_id, args.quantity, args.action, args.reason)
    failed = _report(desk)
    return 0 if ok and not failed else 1


def cmd_orders_stats(args: argparse.Namespace) -> int:
    """Show order statistics."""
    try:
        stats = get_client().order_stats(start_date=args.start, end_date=args.end)
    except StoredeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(stats, indent=2))
        return 0

    print(f"Orders:     {stats.get('totalOrders', 0)}")
    print(f"Revenue:    {format_bdt(stats.get('totalRevenue', 0))}")
    print(f"Average:    {format_bdt(stats.get('avgOrderValue', 0))}")
    print(f"Pending:    {stats.get('pendingOrders', 0)}")
    print(f"Delivered:  {stats.get('deliveredOrders', 0)}")
    print(f"Paid:       {stats.get('paidOrders', 0)}")
    return 0


def cmd_alerts(args: argparse.Namespace) -> int:
    """List low-stock products."""
    try:
        items = get_client().low_stock_alerts()
    except StoredeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not items:
        print("No low-stock products.")
        return 0

    print(f"Low stock ({len(items)}):")
    for item in items:
        print(
            f"  {item.sku:<12}  {item.available_quantity:>5} available"
            f"  (threshold {item.low_stock_threshold}, reorder at {item.reorder_point})"
            f"  {item.title}"
        )
    return 0


def cmd_summary(args: argparse.Namespace) -> int:
    """Show stock counts and value per inventory status."""
    try:
        result = get_client().inventory_summary()
    except StoredeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(result, indent=2))
        return 0

    for group in result["summary"]:
        print(
            f"  {group['status']:<12}  {group['count']:>4} products"
            f"  {group['totalItems']:>6} units  {format_bdt(group['totalValue'])}"
        )
    totals = result["totalStats"]
    print()
    print(
        f"Total: {totals.get('totalProducts', 0)} products,"
        f" {totals.get('totalStock', 0)} in stock,"
        f" {totals.get('totalReserved', 0)} reserved,"
        f" value {format_bdt(totals.get('totalInventoryValue', 0))}"
    )
    return 0


def cmd_sync(args: argparse.Namespace) -> int:
    """Recompute reservations from open orders."""
    try:
        result = get_client().sync_inventory()
    except StoredeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(
        f"Inventory sync completed: {result['updatedCount']} of"
        f" {result['totalProducts']} products updated."
    )
    return 0


def cmd_product_update(args: argparse.Namespace) -> int:
    """Edit a product."""
    changes = {
        key: value
        for key, value in (
            ("title", args.title),
            ("normalPrice", args.price),
            ("salePrice", args.sale_price),
            ("stockQuantity", args.stock),
            ("lowStockThreshold", args.threshold),
            ("reorderPoint", args.reorder_point),
            ("unitCost", args.unit_cost),
            ("status", args.status),
        )
        if value is not None
    }
    if args.discontinue:
        changes["inventoryStatus"] = "discontinued"
    if not changes:
        print("Error: nothing to update", file=sys.stderr)
        return 1

    try:
        product = get_client().update_product(args.product_id, changes)
    except StoredeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Updated {product.title} ({product.sku}): {product.inventory_status}")
    return 0


def cmd_product_delete(args: argparse.Namespace) -> int:
    """Delete a product."""
    try:
        product = get_client().delete_product(args.product_id)
    except StoredeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Deleted {product.title} ({product.sku})")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server."""
    try:
        import uvicorn

        print("Starting storedesk API server...")
        print(f"API docs: http://{args.host}:{args.port}/docs")
        print()

        # When reload is enabled, uvicorn requires the app as an import string
        app_target = "storedesk.api:app" if args.reload else None
        if app_target is None:
            from .api import app
            app_target = app

        uvicorn.run(
            app_target,
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=1,  # Single worker to avoid concurrent write issues
        )
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="storedesk",
        description="Back-office tools for orders, inventory and reviews.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # login
    login_parser = subparsers.add_parser("login", help="Store an admin token")
    login_parser.add_argument("--token", "-t", required=True, help="Admin API token")
    login_parser.add_argument(
        "--no-verify", action="store_true", help="Store the token without checking it"
    )

    # logout
    subparsers.add_parser("logout", help="Forget the stored admin token")

    # orders (subcommand group)
    orders_parser = subparsers.add_parser("orders", help="Manage orders")
    orders_subparsers = orders_parser.add_subparsers(dest="orders_command")

    # orders list
    orders_list_parser = orders_subparsers.add_parser("list", help="List orders")
    orders_list_parser.add_argument("--status", "-s", help="Filter by order status")
    orders_list_parser.add_argument("--search", "-q", help="Order number, name, phone or email")
    orders_list_parser.add_argument("--page", type=int, default=1, help="Page (default: 1)")
    orders_list_parser.add_argument(
        "--limit", type=int, default=20, help="Orders per page (default: 20)"
    )
    orders_list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # orders status
    orders_status_parser = orders_subparsers.add_parser(
        "status", help="Change an order's status"
    )
    orders_status_parser.add_argument("order_id", help="Order ID or order number")
    orders_status_parser.add_argument("status", choices=ORDER_STATUSES, help="New status")
    orders_status_parser.add_argument("--notes", "-n", help="Note to store on the order")
    orders_status_parser.add_argument("--tracking", help="Courier tracking number")
    orders_status_parser.add_argument(
        "--reopen", action="store_true", help="Allow moving back to an earlier status"
    )

    # orders export
    orders_export_parser = orders_subparsers.add_parser("export", help="Export orders as CSV")
    orders_export_parser.add_argument("--status", "-s", help="Filter by order status")
    orders_export_parser.add_argument("--search", "-q", help="Search filter")
    orders_export_parser.add_argument(
        "--output", "-o", help="Output file (default: orders_export_<date>.csv)"
    )

    # orders stats
    orders_stats_parser = orders_subparsers.add_parser("stats", help="Show order statistics")
    orders_stats_parser.add_argument("--from", dest="start", help="First day (YYYY-MM-DD)")
    orders_stats_parser.add_argument("--to", dest="end", help="Last day (YYYY-MM-DD)")
    orders_stats_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # inventory
    inventory_parser = subparsers.add_parser("inventory", help="Show the inventory report")
    inventory_parser.add_argument("--status", "-s", help="Filter by inventory status")
    inventory_parser.add_argument("--search", "-q", help="SKU or title")
    inventory_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # stock
    stock_parser = subparsers.add_parser("stock", help="Add or remove stock")
    stock_parser.add_argument("product_id", help="Product ID or SKU")
    stock_parser.add_argument("action", choices=["add", "remove"], help="Stock action")
    stock_parser.add_argument("quantity", type=int, help="Number of units")
    stock_parser.add_argument("--reason", "-r", help="Reason for the adjustment")

    # alerts
    subparsers.add_parser("alerts", help="List low-stock products")

    # summary
    summary_parser = subparsers.add_parser("summary", help="Stock and value per inventory status")
    summary_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # sync
    subparsers.add_parser("sync", help="Recompute stock reservations from open orders")

    # product (subcommand group)
    product_parser = subparsers.add_parser("product", help="Edit or delete products")
    product_subparsers = product_parser.add_subparsers(dest="product_command")

    # product update
    product_update_parser = product_subparsers.add_parser("update", help="Edit a product")
    product_update_parser.add_argument("product_id", help="Product ID or SKU")
    product_update_parser.add_argument("--title", help="New title")
    product_update_parser.add_argument("--price", type=float, help="Normal price")
    product_update_parser.add_argument("--sale-price", type=float, help="Sale price")
    product_update_parser.add_argument("--stock", type=int, help="Units in stock")
    product_update_parser.add_argument("--threshold", type=int, help="Low-stock threshold")
    product_update_parser.add_argument("--reorder-point", type=int, help="Reorder point")
    product_update_parser.add_argument("--unit-cost", type=float, help="Unit cost")
    product_update_parser.add_argument("--status", help="Product status")
    product_update_parser.add_argument(
        "--discontinue", action="store_true", help="Mark the product discontinued"
    )

    # product delete
    product_delete_parser = product_subparsers.add_parser("delete", help="Delete a product")
    product_delete_parser.add_argument("product_id", help="Product ID or SKU")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port", "-p", type=int, default=5000, help="Port to bind to (default: 5000)"
    )
    serve_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 0

    # Handle orders subcommands
    if args.command == "orders":
        if not getattr(args, "orders_command", None):
            parser.parse_args(["orders", "--help"])
            return 0
        if args.orders_command == "list":
            return cmd_orders_list(args)
        elif args.orders_command == "status":
            return cmd_orders_status(args)
        elif args.orders_command == "export":
            return cmd_orders_export(args)
        elif args.orders_command == "stats":
            return cmd_orders_stats(args)

    # Handle product subcommands
    if args.command == "product":
        if not getattr(args, "product_command", None):
            parser.parse_args(["product", "--help"])
            return 0
        if args.product_command == "update":
            return cmd_product_update(args)
        elif args.product_command == "delete":
            return cmd_product_delete(args)

    commands = {
        "login": cmd_login,
        "logout": cmd_logout,
        "inventory": cmd_inventory,
        "stock": cmd_stock,
        "alerts": cmd_alerts,
        "summary": cmd_summary,
        "sync": cmd_sync,
        "serve": cmd_serve,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
