"""
Backend payload models.

Pydantic models for the JSON documents the back-office API returns. Field aliases
accept the backend's Portuguese keys (codigoProduto, dataVenda, logMovimentacao...)
as well as English names. Each model converts itself into a frozen domain record
with `to_domain()`.

Parsing rules:
- Timestamps and labels are kept raw here and normalized by the domain helpers,
  so an unreadable date becomes None instead of rejecting the record.
- `parse_*` functions validate element by element; a malformed element is logged
  and skipped, never fatal for the batch.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Callable, Iterable, List, Optional, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from retail_analytics.domain.account import Account, AccountKind, AccountStatus, Installment
from retail_analytics.domain.inventory import MovementType, StockItem, StockMovement
from retail_analytics.domain.labels import label_from_raw
from retail_analytics.domain.product import Product, PromotionPeriod
from retail_analytics.domain.sale import SaleLineItem, SaleRecord
from retail_analytics.domain.seller import Seller
from retail_analytics.domain.time import parse_timestamp

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

ZERO = Decimal("0")


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def _ref(raw: Any, *fields: str) -> Optional[str]:
    """First non-empty identifier found in a nested reference (or the raw string itself)."""

    if raw is None:
        return None
    if isinstance(raw, str):
        return raw.strip() or None
    if isinstance(raw, dict):
        for name in fields:
            value = raw.get(name)
            if value not in (None, ""):
                return str(value).strip()
    return None


def _name(raw: Any) -> Optional[str]:
    if isinstance(raw, dict):
        value = raw.get("nome") or raw.get("name")
        return str(value).strip() if value else None
    return None


# ============================================================================
# Sales
# ============================================================================

class SaleItemPayload(_Payload):
    product_code: str = Field(validation_alias=AliasChoices("codigoProduto", "product_code", "productCode"))
    quantity: int = Field(validation_alias=AliasChoices("quantidade", "quantity"))
    unit_price: Decimal = Field(
        default=ZERO,
        validation_alias=AliasChoices("precoFinalUnitario", "precoUnitario", "unit_price", "unitPrice"),
    )
    subtotal: Optional[Decimal] = Field(default=None, validation_alias=AliasChoices("subtotal"))
    product_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("nomeProduto", "product_name", "productName")
    )

    def to_domain(self) -> SaleLineItem:
        subtotal = self.subtotal if self.subtotal is not None else self.unit_price * self.quantity
        return SaleLineItem(
            product_code=self.product_code.strip(),
            quantity=self.quantity,
            unit_price=self.unit_price,
            subtotal=subtotal,
            product_name=self.product_name,
        )


class SalePayload(_Payload):
    sale_id: str = Field(validation_alias=AliasChoices("codigoVenda", "_id", "id", "sale_id", "saleId"))
    timestamp: Any = Field(default=None, validation_alias=AliasChoices("dataVenda", "data", "timestamp", "date"))
    items: List[SaleItemPayload] = Field(default_factory=list, validation_alias=AliasChoices("itens", "items"))
    total: Optional[Decimal] = Field(default=None, validation_alias=AliasChoices("valorTotal", "total"))
    discount: Decimal = Field(default=ZERO, validation_alias=AliasChoices("totalDesconto", "desconto", "discount"))
    seller: Any = Field(default=None, validation_alias=AliasChoices("vendedor", "seller"))
    seller_code: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("codigoVendedor", "seller_code", "sellerCode")
    )
    client: Any = Field(default=None, validation_alias=AliasChoices("cliente", "client"))
    payment_method: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("formaPagamento", "payment_method", "paymentMethod")
    )

    def to_domain(self) -> SaleRecord:
        items = tuple(item.to_domain() for item in self.items)
        total = self.total
        if total is None:
            total = sum((item.subtotal for item in items), ZERO) - self.discount
        sale = SaleRecord(
            sale_id=self.sale_id,
            timestamp=parse_timestamp(self.timestamp),
            items=items,
            total=total,
            discount=self.discount,
            seller_ref=self.seller_code or _ref(self.seller, "codigo", "codigoVendedor", "id", "_id"),
            seller_name=_name(self.seller),
            client_ref=_ref(self.client, "codigoCliente", "codigo", "id", "_id"),
            payment_method=self.payment_method,
        )
        if not sale.is_consistent():
            logger.warning(
                f"Sale {sale.sale_id} total {sale.total} does not match its lines "
                f"({sale.items_subtotal} - discount {sale.discount})",
                extra={"sale_id": sale.sale_id},
            )
        return sale


# ============================================================================
# Stock
# ============================================================================

class MovementPayload(_Payload):
    movement_type: str = Field(validation_alias=AliasChoices("tipo", "movement_type", "type"))
    quantity: int = Field(validation_alias=AliasChoices("quantidade", "quantity"))
    timestamp: Any = Field(default=None, validation_alias=AliasChoices("data", "timestamp", "date"))
    colorway: Optional[str] = Field(default=None, validation_alias=AliasChoices("cor", "colorway", "color"))
    size: Optional[str] = Field(default=None, validation_alias=AliasChoices("tamanho", "size"))
    supplier: Any = Field(default=None, validation_alias=AliasChoices("fornecedor", "supplier"))
    observation: Optional[str] = Field(default=None, validation_alias=AliasChoices("observacao", "observation"))

    def to_domain(self, product_code: str) -> StockMovement:
        return StockMovement(
            product_code=product_code,
            movement_type=MovementType.from_raw(self.movement_type),
            quantity=self.quantity,
            timestamp=parse_timestamp(self.timestamp),
            colorway=self.colorway,
            size=self.size,
            supplier_ref=_ref(self.supplier, "codigoFornecedor", "codigo", "id", "_id"),
            observation=self.observation,
        )


class StockItemPayload(_Payload):
    product_code: str = Field(validation_alias=AliasChoices("codigoProduto", "product_code", "productCode"))
    quantity_total: int = Field(
        default=0, validation_alias=AliasChoices("quantidadeTotal", "quantidade", "quantity_total", "quantity")
    )
    product_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("nomeProduto", "product_name", "productName")
    )
    cost_price: Decimal = Field(default=ZERO, validation_alias=AliasChoices("precoCusto", "cost_price", "costPrice"))
    sale_price: Decimal = Field(default=ZERO, validation_alias=AliasChoices("precoVenda", "sale_price", "salePrice"))
    promotional_price: Optional[Decimal] = Field(
        default=None, validation_alias=AliasChoices("precoPromocional", "promotional_price", "promotionalPrice")
    )
    registered_at: Any = Field(
        default=None, validation_alias=AliasChoices("dataCadastro", "registered_at", "registeredAt")
    )
    movements: List[MovementPayload] = Field(
        default_factory=list, validation_alias=AliasChoices("logMovimentacao", "movements")
    )

    def to_domain(self) -> StockItem:
        code = self.product_code.strip()
        item = StockItem(
            product_code=code,
            quantity_total=self.quantity_total,
            product_name=self.product_name,
            cost_price=self.cost_price,
            sale_price=self.sale_price,
            promotional_price=self.promotional_price,
            registered_at=parse_timestamp(self.registered_at),
        )
        for movement in self.movements:
            item = item.append(movement.to_domain(code))
        return item


# ============================================================================
# Catalog
# ============================================================================

class PromotionPayload(_Payload):
    start_date: Any = Field(validation_alias=AliasChoices("dataInicio", "start_date", "startDate"))
    promo_price: Decimal = Field(
        default=ZERO, validation_alias=AliasChoices("precoPromocional", "promo_price", "promoPrice")
    )
    end_date: Any = Field(default=None, validation_alias=AliasChoices("dataFim", "end_date", "endDate"))
    active: bool = Field(default=False, validation_alias=AliasChoices("ativo", "active"))

    def to_domain(self) -> Optional[PromotionPeriod]:
        start = parse_timestamp(self.start_date)
        if start is None:
            return None
        return PromotionPeriod(
            start_date=start,
            promo_price=self.promo_price,
            end_date=parse_timestamp(self.end_date),
            active=self.active,
        )


class ProductPayload(_Payload):
    code: str = Field(validation_alias=AliasChoices("codigoProduto", "codigo", "code", "product_code"))
    name: str = Field(default="", validation_alias=AliasChoices("nome", "nomeProduto", "name"))
    category: Any = Field(default=None, validation_alias=AliasChoices("categoria", "category"))
    supplier: Any = Field(default=None, validation_alias=AliasChoices("fornecedor", "supplier"))
    cost_price: Decimal = Field(default=ZERO, validation_alias=AliasChoices("precoCusto", "cost_price", "costPrice"))
    sale_price: Decimal = Field(default=ZERO, validation_alias=AliasChoices("precoVenda", "sale_price", "salePrice"))
    promotional_price: Optional[Decimal] = Field(
        default=None, validation_alias=AliasChoices("precoPromocional", "promotional_price", "promotionalPrice")
    )
    on_promotion: bool = Field(default=False, validation_alias=AliasChoices("emPromocao", "on_promotion", "onPromotion"))
    promotion_history: List[PromotionPayload] = Field(
        default_factory=list,
        validation_alias=AliasChoices("logPromocao", "historicoPromocoes", "promotion_history"),
    )

    def to_domain(self) -> Product:
        periods = (p.to_domain() for p in self.promotion_history)
        return Product(
            code=self.code.strip(),
            name=self.name,
            category=label_from_raw(self.category),
            supplier=label_from_raw(self.supplier),
            cost_price=self.cost_price,
            sale_price=self.sale_price,
            promotional_price=self.promotional_price,
            on_promotion=self.on_promotion,
            promotion_history=tuple(p for p in periods if p is not None),
        )


# ============================================================================
# Accounts & sellers
# ============================================================================

class AccountPayload(_Payload):
    document_number: str = Field(
        validation_alias=AliasChoices("numeroDocumento", "document_number", "documentNumber")
    )
    value: Decimal = Field(validation_alias=AliasChoices("valor", "value"))
    status: str = Field(default="Pending", validation_alias=AliasChoices("status"))
    due_date: Any = Field(default=None, validation_alias=AliasChoices("dataVencimento", "due_date", "dueDate"))
    description: str = Field(default="", validation_alias=AliasChoices("descricao", "description"))
    category: Any = Field(default=None, validation_alias=AliasChoices("categoria", "category"))
    counterparty: Any = Field(
        default=None, validation_alias=AliasChoices("cliente", "fornecedor", "counterparty")
    )
    settled_value: Optional[Decimal] = Field(
        default=None,
        validation_alias=AliasChoices("valorRecebido", "valorPago", "settled_value", "settledValue"),
    )
    settlement: Any = Field(default=None, validation_alias=AliasChoices("recebimento", "pagamento", "settlement"))
    installment_number: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("numeroParcela", "installment_number")
    )
    installment_total: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("quantidadeParcelas", "totalParcelas", "installment_total")
    )

    def to_domain(self, kind: AccountKind) -> Account:
        settled = self.settled_value
        if settled is None and isinstance(self.settlement, dict) and self.settlement.get("valor") is not None:
            settled = Decimal(str(self.settlement["valor"]))
        installment = None
        if self.installment_number is not None and self.installment_total:
            installment = Installment(number=self.installment_number, total=self.installment_total)
        return Account(
            document_number=self.document_number,
            kind=kind,
            value=self.value,
            status=AccountStatus.from_raw(self.status),
            due_date=parse_timestamp(self.due_date),
            description=self.description,
            category=label_from_raw(self.category),
            counterparty=label_from_raw(self.counterparty),
            settled_value=settled if settled is not None else ZERO,
            installment=installment,
        )


class SellerPayload(_Payload):
    seller_id: str = Field(validation_alias=AliasChoices("_id", "id", "seller_id", "sellerId"))
    code: str = Field(validation_alias=AliasChoices("codigoVendedor", "codigo", "code"))
    name: str = Field(validation_alias=AliasChoices("nome", "name"))
    active: bool = Field(default=True, validation_alias=AliasChoices("ativo", "active"))
    email: Optional[str] = Field(default=None, validation_alias=AliasChoices("email"))

    def to_domain(self) -> Seller:
        return Seller(
            seller_id=self.seller_id,
            code=self.code,
            name=self.name,
            active=self.active,
            email=self.email,
        )


# ============================================================================
# Batch parsing
# ============================================================================

def _parse_each(
    raw_items: Iterable[Any],
    model: type[M],
    convert: Callable[[M], T],
    kind: str,
) -> List[T]:
    records: List[T] = []
    for index, raw in enumerate(raw_items):
        try:
            records.append(convert(model.model_validate(raw)))
        except (ValidationError, ValueError) as e:
            logger.warning(
                f"Skipping malformed {kind} payload at index {index}: {e}",
                extra={"payload_kind": kind, "payload_index": index},
            )
    logger.debug(
        f"Parsed {len(records)} {kind} records",
        extra={"payload_kind": kind, "parsed": len(records)},
    )
    return records


def parse_sales(raw_items: Iterable[Any]) -> List[SaleRecord]:
    return _parse_each(raw_items, SalePayload, SalePayload.to_domain, "sale")


def parse_stock_items(raw_items: Iterable[Any]) -> List[StockItem]:
    return _parse_each(raw_items, StockItemPayload, StockItemPayload.to_domain, "stock item")


def parse_products(raw_items: Iterable[Any]) -> List[Product]:
    return _parse_each(raw_items, ProductPayload, ProductPayload.to_domain, "product")


def parse_accounts(raw_items: Iterable[Any], kind: AccountKind) -> List[Account]:
    """
    Parse payables or receivables; the backend keeps them in separate collections,
    so the kind comes from the caller.
    """
    return _parse_each(raw_items, AccountPayload, lambda p: p.to_domain(kind), f"{kind.value} account")


def parse_sellers(raw_items: Iterable[Any]) -> List[Seller]:
    return _parse_each(raw_items, SellerPayload, SellerPayload.to_domain, "seller")


__all__ = [
    "AccountPayload",
    "MovementPayload",
    "ProductPayload",
    "PromotionPayload",
    "SaleItemPayload",
    "SalePayload",
    "SellerPayload",
    "StockItemPayload",
    "parse_accounts",
    "parse_products",
    "parse_sales",
    "parse_sellers",
    "parse_stock_items",
]
