import enum


class Role(str, enum.Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    STAFF = "STAFF"
    SYSTEM = "SYSTEM"


class SellerType(str, enum.Enum):
    DIRECT = "DIRECT"
    MSTC = "MSTC"
    GEM = "GEM"


class InvoiceStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    CONFIRMED = "CONFIRMED"


class LeadSource(str, enum.Enum):
    WALK_IN = "WALK_IN"
    REFERRAL = "REFERRAL"
    ONLINE = "ONLINE"
    DEALER = "DEALER"
    OTHER = "OTHER"


class VehicleType(str, enum.Enum):
    TWO_WHEELER = "TWO_WHEELER"
    THREE_WHEELER = "THREE_WHEELER"
    FOUR_WHEELER = "FOUR_WHEELER"
    COMMERCIAL = "COMMERCIAL"
    OTHER = "OTHER"


class FuelType(str, enum.Enum):
    PETROL = "PETROL"
    DIESEL = "DIESEL"
    CNG = "CNG"
    LPG = "LPG"
    ELECTRIC = "ELECTRIC"
    HYBRID = "HYBRID"


class VehicleStatus(str, enum.Enum):
    PURCHASED = "PURCHASED"
    DISMANTLED = "DISMANTLED"
    SCRAPPED = "SCRAPPED"


class PartType(str, enum.Enum):
    ENGINE = "ENGINE"
    BODY = "BODY"
    ELECTRICAL = "ELECTRICAL"
    INTERIOR = "INTERIOR"
    SUSPENSION = "SUSPENSION"
    TRANSMISSION = "TRANSMISSION"
    WHEEL = "WHEEL"
    OTHER = "OTHER"


class Condition(str, enum.Enum):
    NEW = "NEW"
    USED = "USED"
    REFURBISHED = "REFURBISHED"
    DAMAGED = "DAMAGED"


class InventoryStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    PARTIAL_SOLD = "PARTIAL_SOLD"
    SOLD_OUT = "SOLD_OUT"
    DAMAGE_ONLY = "DAMAGE_ONLY"


class RtoStatus(str, enum.Enum):
    NOT_APPLIED = "NOT_APPLIED"
    APPLIED = "APPLIED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class DocumentType(str, enum.Enum):
    RC = "rc"
    OWNER_ID = "ownerId"
    OTHER = "other"


class AuditStatus(str, enum.Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


class AuditAction(str, enum.Enum):
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"
    REFRESH_TOKEN = "REFRESH_TOKEN"
    CREATE_ADMIN = "CREATE_ADMIN"
    CREATE_STAFF = "CREATE_STAFF"
    UPDATE_USER = "UPDATE_USER"
    DELETE_USER = "DELETE_USER"
    RESET_PASSWORD = "RESET_PASSWORD"
    CREATE_ORGANIZATION = "CREATE_ORGANIZATION"
    CREATE_INVOICE = "CREATE_INVOICE"
    UPDATE_INVOICE = "UPDATE_INVOICE"
    DELETE_INVOICE = "DELETE_INVOICE"
    CREATE_VEHICLE_INVOICE = "CREATE_VEHICLE_INVOICE"
    UPDATE_VEHICLE_INVOICE = "UPDATE_VEHICLE_INVOICE"
    DELETE_VEHICLE_INVOICE = "DELETE_VEHICLE_INVOICE"
    UPLOAD_PURCHASE_DOCUMENT = "UPLOAD_PURCHASE_DOCUMENT"
    API_CALL = "API_CALL"
