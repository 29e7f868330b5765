# In-memory spend tree for one billing account and one period:
#   DemandSpend (billing account) -> ProjectSpend -> OrderSpend
#
# Entries are plain dicts keyed by entity id. Every lease amount is added
# once at each level under the fixed decimal context, so iteration order
# never changes a total.

from dataclasses import dataclass, field
from decimal import Decimal

from decimals import SPEND_CONTEXT, ZERO, DecimalContext


@dataclass
class OrderSpend:
    order_id: str
    spend: Decimal = ZERO


@dataclass
class ProjectSpend:
    project_id: str
    spend: Decimal = ZERO
    orders: dict = field(default_factory=dict)  # order_id -> OrderSpend


@dataclass
class DemandSpend:
    """Spend of one billing account, broken down by project and order."""

    billing_account_id: str
    spend: Decimal = ZERO
    projects: dict = field(default_factory=dict)  # project_id -> ProjectSpend
    ctx: DecimalContext = field(default=SPEND_CONTEXT, repr=False, compare=False)

    def project(self, project_id: str) -> ProjectSpend:
        """Project entry, created at zero on first sight."""
        entry = self.projects.get(project_id)
        if entry is None:
            entry = ProjectSpend(project_id=project_id)
            self.projects[project_id] = entry
        return entry

    def open_order(self, project_id: str, order_id: str) -> OrderSpend:
        """Start a fresh zero order entry under its project."""
        order = OrderSpend(order_id=order_id)
        self.project(project_id).orders[order_id] = order
        return order

    def add(self, project_id: str, order_id: str, amount: Decimal) -> None:
        """Fold one lease amount into its order, project and account totals.

        Raises SpendArithmeticError if any addition traps; totals already
        updated for this amount stay as they are.
        """
        project = self.project(project_id)
        order = project.orders.get(order_id)
        if order is None:
            order = self.open_order(project_id, order_id)

        order.spend = self.ctx.add(order.spend, amount)
        project.spend = self.ctx.add(project.spend, amount)
        self.spend = self.ctx.add(self.spend, amount)

    def to_dict(self) -> dict:
        return {
            "billing_account_id": self.billing_account_id,
            "spend": str(self.spend),
            "projects": {
                pid: {
                    "spend": str(p.spend),
                    "orders": {oid: str(o.spend) for oid, o in p.orders.items()},
                }
                for pid, p in self.projects.items()
            },
        }
