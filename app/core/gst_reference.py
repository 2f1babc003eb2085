"""
GST reference data.

State codes follow the first two digits of a GSTIN (as used on the GST portal).
Rate slabs and the category mapping drive the rule-based liability estimate.
"""
from decimal import Decimal
from enum import Enum

# GST State Codes
GST_STATE_CODES = {
    "01": "Jammu & Kashmir", "02": "Himachal Pradesh", "03": "Punjab",
    "04": "Chandigarh", "05": "Uttarakhand", "06": "Haryana",
    "07": "Delhi", "08": "Rajasthan", "09": "Uttar Pradesh",
    "10": "Bihar", "11": "Sikkim", "12": "Arunachal Pradesh",
    "13": "Nagaland", "14": "Manipur", "15": "Mizoram",
    "16": "Tripura", "17": "Meghalaya", "18": "Assam",
    "19": "West Bengal", "20": "Jharkhand", "21": "Odisha",
    "22": "Chhattisgarh", "23": "Madhya Pradesh", "24": "Gujarat",
    "26": "Dadra & Nagar Haveli and Daman & Diu", "27": "Maharashtra",
    "28": "Andhra Pradesh (Old)", "29": "Karnataka", "30": "Goa",
    "31": "Lakshadweep", "32": "Kerala", "33": "Tamil Nadu",
    "34": "Puducherry", "35": "Andaman & Nicobar Islands",
    "36": "Telangana", "37": "Andhra Pradesh",
    "38": "Ladakh", "97": "Other Territory"
}

# Allowed GST rates (percent)
GST_RATES = (0, 5, 12, 18, 28)
GST_RATE_VALUES = frozenset(Decimal(rate) for rate in GST_RATES)

# Default rate for categories missing from CATEGORY_GST_RATES
DEFAULT_GST_RATE = 18


class SupplyType(str, Enum):
    """Intra-state supplies attract CGST + SGST, inter-state supplies IGST."""
    INTRA_STATE = "intra-state"
    INTER_STATE = "inter-state"


class InvoiceUnit(str, Enum):
    """Units of measure accepted on invoice line items."""
    NOS = "Nos"
    PCS = "Pcs"
    KG = "Kg"
    LTR = "Ltr"
    MTR = "Mtr"
    HRS = "Hrs"
    DAYS = "Days"
    BOX = "Box"
    SET = "Set"


INVOICE_UNITS = frozenset(unit.value for unit in InvoiceUnit)

GST_RATE_SLABS = [
    {"rate": 0, "label": "Exempt (0%)", "examples": ["Salaries", "Interest", "Personal transfers"]},
    {"rate": 5, "label": "Essential (5%)", "examples": ["Transport", "Non-AC restaurants", "Essential goods"]},
    {"rate": 12, "label": "Standard (12%)", "examples": ["Processed food", "Budget hotels", "Some IT services"]},
    {"rate": 18, "label": "Standard (18%)", "examples": ["Most services", "Software", "Professional services", "Banking"]},
    {"rate": 28, "label": "Luxury (28%)", "examples": ["Luxury items", "Automobiles", "Tobacco", "Aerated drinks"]},
]

# Revenue and expense categories to GST rate
CATEGORY_GST_RATES = {
    # Revenue
    "Sales Revenue": 18,
    "Service Income": 18,
    "Consulting Income": 18,
    "Product Sales": 18,
    "Commission Income": 18,
    "Freelance Income": 18,
    "Interest Income": 0,
    "Dividend Income": 0,
    "Investment Returns": 0,
    "Refunds Received": 0,
    "Other Income": 18,
    # Expenses
    "Salaries & Wages": 0,
    "Rent & Utilities": 18,
    "Office Supplies": 18,
    "Marketing & Advertising": 18,
    "Travel & Transportation": 5,
    "Food & Entertainment": 18,
    "Professional Services": 18,
    "Legal & Compliance": 18,
    "Insurance": 18,
    "Bank Charges": 18,
    "Software & Subscriptions": 18,
    "Equipment & Maintenance": 18,
    "Inventory/Stock Purchase": 18,
    "General Expenses": 18,
    "Taxes & Licenses": 0,
    "EMI/Loan Repayment": 0,
    "Personal Transfer": 0,
    "ATM Withdrawal": 0,
    "UPI Transfer": 0,
}


def is_valid_state_code(code) -> bool:
    return isinstance(code, str) and code in GST_STATE_CODES


def gst_rate_for_category(category: str) -> int:
    """Mapped GST rate for a P&L category, DEFAULT_GST_RATE when unmapped."""
    return CATEGORY_GST_RATES.get(category, DEFAULT_GST_RATE)
