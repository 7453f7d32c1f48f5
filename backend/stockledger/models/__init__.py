from .accounts import Account
from .directory import (
    Counterparty, Location,
    LOCATION_TYPES, COUNTERPARTY_TYPES,
    LOCATION_TYPE_SALES, LOCATION_TYPE_PROMO, LOCATION_TYPE_BLOGGER,
    LOCATION_TYPE_SOLD, LOCATION_TYPE_SCRAP, LOCATION_TYPE_OTHER,
)
from .catalog import ProductModel, ProductVariant, PriceHistoryEntry, PromoCode
from .operations import (
    Operation, OperationLine, StockMovement, MarkCode,
    OPERATION_TYPES, TRANSFER_SHAPED_TYPES, MARK_STATUSES, MARKING_NOT_HANDLED_TAG,
    OP_INBOUND, OP_TRANSFER, OP_SHIP_BLOGGER, OP_RETURN_BLOGGER,
    OP_SALE, OP_SALE_RETURN, OP_WRITEOFF, OP_ADJUSTMENT,
    MARK_IN_STOCK, MARK_AT_BLOGGER, MARK_SOLD, MARK_RETURNED, MARK_WRITTEN_OFF, MARK_UNKNOWN,
)

__all__ = [
    'Account',
    'Counterparty', 'Location',
    'ProductModel', 'ProductVariant', 'PriceHistoryEntry', 'PromoCode',
    'Operation', 'OperationLine', 'StockMovement', 'MarkCode',
    'LOCATION_TYPES', 'COUNTERPARTY_TYPES', 'OPERATION_TYPES', 'TRANSFER_SHAPED_TYPES',
    'MARK_STATUSES', 'MARKING_NOT_HANDLED_TAG',
    'LOCATION_TYPE_SALES', 'LOCATION_TYPE_PROMO', 'LOCATION_TYPE_BLOGGER',
    'LOCATION_TYPE_SOLD', 'LOCATION_TYPE_SCRAP', 'LOCATION_TYPE_OTHER',
    'OP_INBOUND', 'OP_TRANSFER', 'OP_SHIP_BLOGGER', 'OP_RETURN_BLOGGER',
    'OP_SALE', 'OP_SALE_RETURN', 'OP_WRITEOFF', 'OP_ADJUSTMENT',
    'MARK_IN_STOCK', 'MARK_AT_BLOGGER', 'MARK_SOLD', 'MARK_RETURNED', 'MARK_WRITTEN_OFF', 'MARK_UNKNOWN',
]
