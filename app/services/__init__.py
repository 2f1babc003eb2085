# Services module
from app.services.invoice_sequence_service import InvoiceSequenceService
from app.services.gst_invoice_service import GSTInvoiceService
from app.services.pl_statement_service import PLStatementService
from app.services.gst_liability_service import GSTLiabilityService

__all__ = [
    "InvoiceSequenceService",
    "GSTInvoiceService",
    "PLStatementService",
    "GSTLiabilityService",
]
