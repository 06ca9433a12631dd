"""Customer field definitions."""
from acuimport.schema.models import EntityField, FieldType, LookupRequirement

CUSTOMER_FIELDS = [
    EntityField("Customer ID", "CustomerID", FieldType.STRING, True, "Unique identifier"),
    EntityField("Customer Name", "CustomerName", FieldType.STRING, True, "Legal/display name", max_length=256),
    EntityField("Customer Class", "CustomerClass", FieldType.STRING, True, "Must exist in Acumatica"),
    EntityField("Status", "Status", FieldType.STRING, True, "Active, On Hold, One-Time, etc."),
    EntityField("Terms", "Terms", FieldType.STRING, False, "Payment terms code"),
    EntityField("Currency", "CurrencyID", FieldType.STRING, False, "Defaults to base currency"),
    EntityField("Tax Zone", "TaxZone", FieldType.STRING, False, "Tax zone code"),
    EntityField("Credit Limit", "CreditLimit", FieldType.DECIMAL, False, "Credit limit amount"),
    EntityField("Statement Type", "StatementType", FieldType.STRING, False, "Balance Brought Forward, Open Item"),
    EntityField("Parent Account", "ParentAccount", FieldType.STRING, False, "Parent customer ID"),
    EntityField("Email", "Email", FieldType.STRING, False, "Primary email"),
    EntityField("Phone", "Phone", FieldType.STRING, False, "Primary phone"),
]

# Address and contact aliases target nested paths on the Customer entity
CUSTOMER_ALIASES = {
    "Account": "CustomerID",
    "Acct": "CustomerID",
    "Cust ID": "CustomerID",
    "Company": "CustomerName",
    "Company Name": "CustomerName",
    "Account Name": "CustomerName",
    "Class": "CustomerClass",
    "Customer Type": "CustomerClass",
    "Payment Terms": "Terms",
    "Net Terms": "Terms",
    "Address": "MainAddress.AddressLine1",
    "Street": "MainAddress.AddressLine1",
    "Address Line 1": "MainAddress.AddressLine1",
    "City": "MainAddress.City",
    "Town": "MainAddress.City",
    "State": "MainAddress.State",
    "Province": "MainAddress.State",
    "Region": "MainAddress.State",
    "Zip": "MainAddress.PostalCode",
    "Zip Code": "MainAddress.PostalCode",
    "Postal Code": "MainAddress.PostalCode",
    "Contact": "MainContact.DisplayName",
    "Contact Name": "MainContact.DisplayName",
    "Contact Email": "MainContact.Email",
    "Contact Phone": "MainContact.Phone1",
}

CUSTOMER_LOOKUPS = [
    LookupRequirement("CustomerClass", "CustomerClass", "ClassID", "Customer Classes"),
    LookupRequirement("Terms", "Terms", "TermsID", "Payment Terms"),
    LookupRequirement("TaxZone", "TaxZone", "TaxZoneID", "Tax Zones"),
    LookupRequirement("CurrencyID", "Currency", "CurrencyID", "Currencies"),
]
