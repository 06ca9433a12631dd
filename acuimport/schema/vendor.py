"""Vendor field definitions."""
from acuimport.schema.models import EntityField, FieldType, LookupRequirement

VENDOR_FIELDS = [
    EntityField("Vendor ID", "VendorID", FieldType.STRING, True, "Unique identifier"),
    EntityField("Vendor Name", "VendorName", FieldType.STRING, True, "Legal/display name", max_length=256),
    EntityField("Vendor Class", "VendorClass", FieldType.STRING, True, "Must exist in Acumatica"),
    EntityField("Status", "Status", FieldType.STRING, True, "Active, On Hold, One-Time"),
    EntityField("Terms", "Terms", FieldType.STRING, False, "Payment terms code"),
    EntityField("Currency", "CurrencyID", FieldType.STRING, False, "Defaults to base currency"),
    EntityField("Tax Zone", "TaxZone", FieldType.STRING, False, "Tax zone code"),
    EntityField("Payment Method", "PaymentMethod", FieldType.STRING, False, "Default payment method"),
    EntityField("Cash Account", "CashAccount", FieldType.STRING, False, "Default cash account"),
    EntityField("Landed Cost Vendor", "LandedCostVendor", FieldType.BOOLEAN, False, "Is landed cost vendor"),
    EntityField("Tax Agency", "TaxAgency", FieldType.BOOLEAN, False, "Is tax agency"),
    EntityField("Email", "Email", FieldType.STRING, False, "Primary email"),
    EntityField("Phone", "Phone", FieldType.STRING, False, "Primary phone"),
]

VENDOR_ALIASES = {
    "Supplier": "VendorID",
    "Supplier ID": "VendorID",
    "Vendor #": "VendorID",
    "Vendor Number": "VendorID",
    "Supplier Name": "VendorName",
    "Company": "VendorName",
    "Company Name": "VendorName",
    "Class": "VendorClass",
    "Vendor Type": "VendorClass",
    "Category": "VendorClass",
    "Payment Terms": "Terms",
    "Net Terms": "Terms",
    "Terms Code": "Terms",
    "Address": "MainAddress.AddressLine1",
    "Street": "MainAddress.AddressLine1",
    "Address Line 1": "MainAddress.AddressLine1",
    "Contact": "MainContact.DisplayName",
    "Contact Name": "MainContact.DisplayName",
}

VENDOR_LOOKUPS = [
    LookupRequirement("VendorClass", "VendorClass", "ClassID", "Vendor Classes"),
    LookupRequirement("Terms", "Terms", "TermsID", "Payment Terms"),
    LookupRequirement("TaxZone", "TaxZone", "TaxZoneID", "Tax Zones"),
    LookupRequirement("PaymentMethod", "PaymentMethod", "PaymentMethodID", "Payment Methods"),
    LookupRequirement("CashAccount", "CashAccount", "CashAccountCD", "Cash Accounts"),
]
