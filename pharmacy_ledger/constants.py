# pharmacy_ledger/constants.py

APP_NAME = "Pharmacy Ledger"

# ---- storage ----
DATA_DIR = "data"
DB_FILE_NAME = "pharmacy.db"
DB_PATH_ENV = "PHARMACY_LEDGER_DB"
TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1.0.0"

# ---- units & tax ----
# Pieces per strip used whenever a pack size is missing or not positive.
DEFAULT_PACK_SIZE = 10
DEFAULT_GST_RATE = 12.0
GST_RATES = (0, 5, 12, 18)
DEFAULT_HSN_CODE = "3004"

# ---- documents ----
SALES_RETURN_PREFIX = "SR"
SUPPLIER_RETURN_PREFIX = "PR"

PAYMENT_STATUSES = ("PENDING", "PARTIAL", "PAID")
SUPPLIER_RETURN_REASONS = ("EXPIRY", "DAMAGE", "OVERSTOCK", "OTHER")
SUPPLIER_RETURN_STATUSES = ("PENDING", "APPROVED", "COMPLETED", "REJECTED")
REFUND_MODES = ("CASH", "CREDIT_NOTE", "ADJUSTMENT")

# ---- parties ----
DEFAULT_SUPPLIER_STATE = "Tamil Nadu"
DEFAULT_PAYMENT_TERMS = 30

# id of the seeded admin user; used when no operator is supplied
DEFAULT_USER_ID = 1
