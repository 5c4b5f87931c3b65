import enum

class LocationType(str, enum.Enum):
    warehouse = "warehouse"
    zone = "zone"
    dock = "dock"
    quarantine = "quarantine"
    store = "store"

class POStatus(str, enum.Enum):
    draft = "draft"
    submitted = "submitted"
    approved = "approved"
    partially_received = "partially_received"
    fully_received = "fully_received"
    cancelled = "cancelled"

# Only these statuses accept new goods receipts.
RECEIVABLE_PO_STATUSES = frozenset({POStatus.approved, POStatus.partially_received})

class TransactionType(str, enum.Enum):
    receipt = "receipt"

class InventoryStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
