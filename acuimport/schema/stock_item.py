"""Stock item field definitions."""
from acuimport.schema.models import EntityField, FieldType, LookupRequirement

STOCK_ITEM_FIELDS = [
    EntityField("Inventory ID", "InventoryID", FieldType.STRING, True, "Unique identifier, uppercase"),
    EntityField("Description", "Description", FieldType.STRING, True, "Item description", max_length=256),
    EntityField("Item Class", "ItemClass", FieldType.STRING, True, "Must exist in Acumatica"),
    EntityField("Item Type", "ItemType", FieldType.STRING, True, "Finished Good, Component, Subassembly, etc."),
    EntityField("Item Status", "ItemStatus", FieldType.STRING, True, "Active, Inactive, No Sales, etc."),
    EntityField("Base UOM", "BaseUOM", FieldType.STRING, True, "Unit of measure (EACH, LB, etc.)"),
    EntityField("Default Price", "DefaultPrice", FieldType.DECIMAL, False, "Default selling price"),
    EntityField("Current Cost", "CurrentStdCost", FieldType.DECIMAL, False, "Current standard cost"),
    EntityField("Tax Category", "TaxCategory", FieldType.STRING, False, "Tax category code"),
    EntityField("Warehouse", "DefaultWarehouse", FieldType.STRING, False, "Default warehouse ID"),
    EntityField("Product Class", "ProductClass", FieldType.STRING, False, "For reporting/grouping"),
    EntityField("Weight", "Weight", FieldType.DECIMAL, False, "Item weight"),
    EntityField("Volume", "Volume", FieldType.DECIMAL, False, "Item volume"),
]

STOCK_ITEM_ALIASES = {
    "SKU": "InventoryID",
    "Part Number": "InventoryID",
    "Item Number": "InventoryID",
    "Name": "Description",
    "Item Name": "Description",
    "Product Name": "Description",
    "Class": "ItemClass",
    "Category": "ItemClass",
    "UOM": "BaseUOM",
    "Unit": "BaseUOM",
    "Price": "DefaultPrice",
    "Sell Price": "DefaultPrice",
    "List Price": "DefaultPrice",
    "Cost": "CurrentStdCost",
    "Unit Cost": "CurrentStdCost",
    "Std Cost": "CurrentStdCost",
}

STOCK_ITEM_LOOKUPS = [
    LookupRequirement("ItemClass", "ItemClass", "ClassID", "Item Classes"),
    LookupRequirement("BaseUOM", "UnitOfMeasure", "UOM", "Units of Measure"),
    LookupRequirement("TaxCategory", "TaxCategory", "TaxCategoryID", "Tax Categories"),
    LookupRequirement("DefaultWarehouse", "Warehouse", "WarehouseID", "Warehouses"),
]
