DEFAULT_ROLES = [
    ("RESIDENT", "Resident of a flat in the society"),
    ("SECRETARY", "Society secretary managing notices, complaints and billing"),
    ("CHAIRMAN", "Society chairman with full administrative access"),
]

ROLE_NAMES = tuple(name for name, _ in DEFAULT_ROLES)
ADMIN_ROLES = ("CHAIRMAN", "SECRETARY")

NOTICE_TYPES = ("general", "maintenance", "urgent")
# Residents may only post these; everything else needs an admin role.
RESIDENT_NOTICE_TYPES = {"general"}

COMPLAINT_STATUSES = ("open", "acknowledged", "resolved", "cleared")
COMPLAINT_TRANSITIONS = {
    "open": {"acknowledged"},
    "acknowledged": {"resolved"},
    "resolved": {"cleared"},
    "cleared": set(),
}

VEHICLE_TYPES = ("2-wheeler", "4-wheeler", "auto", "commercial")

PAYMENT_METHODS = ("cash", "upi", "cheque", "bank_transfer", "neft")
