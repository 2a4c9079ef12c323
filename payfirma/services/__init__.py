"""Resource services exposed on PayfirmaClient."""

from payfirma.services.base import ResourceService
from payfirma.services.customers import CustomerService
from payfirma.services.eft import EFTService
from payfirma.services.invoices import InvoiceService, calculate_invoice_totals
from payfirma.services.plans import PlanService
from payfirma.services.terminals import TerminalService
from payfirma.services.transactions import TransactionService

__all__ = [
    "CustomerService",
    "EFTService",
    "InvoiceService",
    "PlanService",
    "ResourceService",
    "TerminalService",
    "TransactionService",
    "calculate_invoice_totals",
]
