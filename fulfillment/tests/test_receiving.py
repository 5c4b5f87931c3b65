from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from fulfillment.app.db.models.core_types import POStatus
from fulfillment.app.db.models.models_v1 import (
    GoodsReceipt,
    GoodsReceiptLine,
    InventoryRecord,
    InventoryTransaction,
    PurchaseOrder,
)
from fulfillment.services import receiving
from fulfillment.services.errors import (
    ErrorCode,
    Inconsistency,
    InvalidState,
    NotFound,
    ReceiptRejected,
    StoreFailure,
)
from fulfillment.services.receiving import (
    allocate_receipt_number,
    draft_receipt,
    get_goods_receipt,
    list_goods_receipts,
    receive_goods,
    reconcile_order,
)
from helpers import header, ledger_for, line, order_status, stock_of


def _snapshot_state(session_factory):
    """Everything a receipt may touch, as plain values."""
    with session_factory() as s:
        return {
            "orders": [
                (po.id, po.status, po.version, po.updated_at)
                for po in s.execute(select(PurchaseOrder).order_by(PurchaseOrder.id)).scalars()
            ],
            "receipts": s.execute(select(func.count(GoodsReceipt.id))).scalar_one(),
            "receipt_lines": s.execute(select(func.count(GoodsReceiptLine.id))).scalar_one(),
            "inventory": [
                (r.product_id, r.location_id, r.current_stock, r.version)
                for r in s.execute(select(InventoryRecord)).scalars()
            ],
            "ledger": s.execute(select(func.count(InventoryTransaction.id))).scalar_one(),
        }


def test_scenario_a_receive_everything_at_once(session_factory, world, make_order):
    """
    GIVEN one line ordered 10, no receipts
    WHEN 10 are received into L
    THEN remaining == 0 and the order is fully_received
    """
    po = make_order([(world.product_a, 10, "2.00")])
    line_id = po.lines[0].id

    outcome = receive_goods(session_factory, po.id, header(), [line(line_id, 10, world.loc_main)], world.actor)

    assert outcome.order_status == POStatus.fully_received
    assert outcome.previous_status == POStatus.approved
    assert outcome.status_changed
    assert order_status(session_factory, po.id) == POStatus.fully_received
    with session_factory() as s:
        (r,) = reconcile_order(s, po.id, world.actor)
    assert r.remaining == 0
    assert stock_of(session_factory, world.product_a, world.loc_main) == Decimal("10")


def test_scenario_b_two_partial_deliveries(session_factory, world, make_order):
    po = make_order([(world.product_a, 10, "2.00")])
    line_id = po.lines[0].id

    first = receive_goods(session_factory, po.id, header(), [line(line_id, 6, world.loc_main)], world.actor)

    assert first.order_status == POStatus.partially_received
    (r,) = first.lines
    assert r.remaining == Decimal("4")

    second = receive_goods(session_factory, po.id, header(16), [line(line_id, 4, world.loc_main)], world.actor)

    assert second.order_status == POStatus.fully_received
    assert second.previous_status == POStatus.partially_received
    (r,) = second.lines
    assert r.remaining == 0
    assert first.receipt_number != second.receipt_number
    assert stock_of(session_factory, world.product_a, world.loc_main) == Decimal("10")
    assert len(ledger_for(session_factory, world.product_a, world.loc_main)) == 2


def test_scenario_c_over_receipt_is_rejected_without_side_effects(session_factory, world, make_order):
    po = make_order([(world.product_a, 10, "2.00")])
    line_id = po.lines[0].id
    receive_goods(session_factory, po.id, header(), [line(line_id, 6, world.loc_main)], world.actor)
    before = _snapshot_state(session_factory)

    with pytest.raises(ReceiptRejected) as exc:
        receive_goods(session_factory, po.id, header(), [line(line_id, 5, world.loc_main)], world.actor)

    err = exc.value
    assert err.code == ErrorCode.over_receipt
    assert not err.retryable
    (v,) = err.result.violations
    assert v.order_line_id == line_id
    assert v.maximum == Decimal("4")
    assert _snapshot_state(session_factory) == before


def test_scenario_d_first_receipt_into_location(session_factory, world, make_order):
    po = make_order([(world.product_a, 10, "1.25")])

    outcome = receive_goods(
        session_factory, po.id, header(), [line(po.lines[0].id, 3, world.loc_overflow)], world.actor
    )

    assert stock_of(session_factory, world.product_a, world.loc_overflow) == Decimal("3")
    (tx,) = ledger_for(session_factory, world.product_a, world.loc_overflow)
    assert tx.quantity == Decimal("3")
    assert tx.total_cost == Decimal("3.75")
    assert tx.reference_id == outcome.receipt_id


def test_multi_line_order_stays_partial_until_every_line_is_in(session_factory, world, make_order):
    po = make_order([(world.product_a, 10, "1"), (world.product_b, 4, "3")])
    a, b = (l.id for l in po.lines)

    outcome = receive_goods(
        session_factory,
        po.id,
        header(),
        [line(a, 10, world.loc_main), line(b, 0, None)],
        world.actor,
    )
    assert outcome.order_status == POStatus.partially_received

    outcome = receive_goods(session_factory, po.id, header(), [line(b, 4, world.loc_overflow)], world.actor)
    assert outcome.order_status == POStatus.fully_received


def test_receipt_rows_carry_actor_and_tenant(session_factory, world, make_order):
    po = make_order([(world.product_a, 10, "1")])

    outcome = receive_goods(
        session_factory,
        po.id,
        header(notes="pallet 2 damaged wrap"),
        [line(po.lines[0].id, 2, world.loc_main)],
        world.actor,
    )

    with session_factory() as s:
        gr = get_goods_receipt(s, outcome.receipt_id, world.actor)
        assert gr.receipt_number == outcome.receipt_number
        assert gr.notes == "pallet 2 damaged wrap"
        assert gr.received_by == gr.created_by == world.actor.user_id
        assert gr.organization_id == world.actor.tenant_id
        (gl,) = gr.lines
        assert gl.quantity == Decimal("2")
        assert gl.location_id == world.loc_main
        assert gl.created_by == world.actor.user_id
        po_row = s.get(PurchaseOrder, po.id)
        assert po_row.updated_by == world.actor.user_id


def test_failed_validation_leaves_store_unchanged(session_factory, world, make_order):
    po = make_order([(world.product_a, 10, "1"), (world.product_b, 4, "3")])
    a, b = (l.id for l in po.lines)
    before = _snapshot_state(session_factory)

    with pytest.raises(ReceiptRejected) as exc:
        receive_goods(
            session_factory,
            po.id,
            header(),
            [line(a, 3, world.loc_main), line(b, 2, None)],
            world.actor,
        )

    assert exc.value.result.line_errors == {1: {"location_id": "Storage location is required"}}
    assert _snapshot_state(session_factory) == before


def test_quantity_below_stored_scale_is_rejected_not_truncated(session_factory, world, make_order):
    """
    GIVEN ordered 10
    WHEN 0.0004 is received (0.000 once stored at 3 decimals)
    THEN the receipt is rejected and nothing is written
    """
    po = make_order([(world.product_a, 10, "1")])
    before = _snapshot_state(session_factory)

    with pytest.raises(ReceiptRejected) as exc:
        receive_goods(session_factory, po.id, header(), [line(po.lines[0].id, "0.0004", world.loc_main)], world.actor)

    assert ErrorCode.invalid_quantity in exc.value.result.codes
    assert not exc.value.retryable
    assert _snapshot_state(session_factory) == before
    assert order_status(session_factory, po.id) == POStatus.approved
    assert stock_of(session_factory, world.product_a, world.loc_main) is None


def test_quantity_at_stored_scale_is_kept_exactly(session_factory, world, make_order):
    po = make_order([(world.product_a, 10, "1")])

    receive_goods(session_factory, po.id, header(), [line(po.lines[0].id, "0.001", world.loc_main)], world.actor)

    assert stock_of(session_factory, world.product_a, world.loc_main) == Decimal("0.001")
    (entry,) = ledger_for(session_factory, world.product_a, world.loc_main)
    assert entry.quantity == Decimal("0.001")
    assert order_status(session_factory, po.id) == POStatus.partially_received


def test_order_of_another_tenant_is_not_found(session_factory, world, make_order):
    po = make_order([(world.product_a, 10, "1")])

    with pytest.raises(NotFound):
        receive_goods(
            session_factory, po.id, header(), [line(po.lines[0].id, 1, world.other_loc)], world.other_actor
        )
    with pytest.raises(NotFound):
        receive_goods(session_factory, 999_999, header(), [line(1, 1, world.loc_main)], world.actor)


def test_location_of_another_tenant_or_inactive_is_rejected(session_factory, world, make_order):
    po = make_order([(world.product_a, 10, "1")])
    line_id = po.lines[0].id

    with pytest.raises(ReceiptRejected) as exc:
        receive_goods(
            session_factory,
            po.id,
            header(),
            [line(line_id, 1, world.other_loc), line(line_id, 1, world.loc_inactive)],
            world.actor,
        )

    assert set(exc.value.result.line_errors) == {0, 1}
    assert exc.value.code == ErrorCode.not_found


@pytest.mark.parametrize("status", [POStatus.draft, POStatus.fully_received, POStatus.cancelled])
def test_order_not_receivable(session_factory, world, make_order, status):
    po = make_order([(world.product_a, 10, "1")], status=status)

    with pytest.raises(ReceiptRejected) as exc:
        receive_goods(session_factory, po.id, header(), [line(po.lines[0].id, 1, world.loc_main)], world.actor)

    assert exc.value.code == ErrorCode.invalid_state
    assert order_status(session_factory, po.id) == status


def test_store_failure_mid_receipt_rolls_everything_back(session_factory, world, make_order, monkeypatch):
    po = make_order([(world.product_a, 10, "1")])
    before = _snapshot_state(session_factory)

    def broken_ledger(*args, **kwargs):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(receiving, "apply_receipt", broken_ledger)

    with pytest.raises(StoreFailure) as exc:
        receive_goods(session_factory, po.id, header(), [line(po.lines[0].id, 5, world.loc_main)], world.actor)

    assert exc.value.retryable
    assert _snapshot_state(session_factory) == before


def test_corrupt_history_is_fatal_and_not_repaired(db_session, session_factory, world, make_order):
    po = make_order([(world.product_a, 4, "1")])
    line_id = po.lines[0].id
    # a receipt written behind the engine's back, exceeding the order
    gr = GoodsReceipt(
        organization_id=world.actor.tenant_id,
        po_id=po.id,
        receipt_number="GR-LEGACY",
        receipt_date=header().receipt_date,
    )
    db_session.add(gr)
    db_session.flush()
    db_session.add(
        GoodsReceiptLine(
            organization_id=world.actor.tenant_id,
            receipt_id=gr.id,
            po_line_id=line_id,
            quantity=Decimal("5"),
            location_id=world.loc_main,
        )
    )
    db_session.commit()
    before = _snapshot_state(session_factory)

    with pytest.raises(Inconsistency):
        receive_goods(session_factory, po.id, header(), [line(line_id, 1, world.loc_main)], world.actor)
    with session_factory() as s, pytest.raises(Inconsistency):
        reconcile_order(s, po.id, world.actor)

    assert _snapshot_state(session_factory) == before


def test_draft_receipt_prefills_remaining(session_factory, world, make_order):
    po = make_order([(world.product_a, 10, "1"), (world.product_b, 4, "3")])
    a, b = (l.id for l in po.lines)
    receive_goods(session_factory, po.id, header(), [line(a, 6, world.loc_main), line(b, 4, world.loc_main)], world.actor)

    with session_factory() as s:
        draft = draft_receipt(s, po.id, world.actor)

    assert [(d.order_line_id, d.quantity, d.location_id) for d in draft] == [(a, Decimal("4"), None)]


def test_draft_receipt_refuses_unreceivable_order(session_factory, world, make_order):
    po = make_order([(world.product_a, 10, "1")], status=POStatus.submitted)

    with session_factory() as s, pytest.raises(InvalidState):
        draft_receipt(s, po.id, world.actor)


def test_list_goods_receipts_newest_first(session_factory, world, make_order):
    po = make_order([(world.product_a, 10, "1")])
    line_id = po.lines[0].id
    older = receive_goods(session_factory, po.id, header(10), [line(line_id, 1, world.loc_main)], world.actor)
    newer = receive_goods(session_factory, po.id, header(12), [line(line_id, 2, world.loc_main)], world.actor)

    with session_factory() as s:
        receipts = list_goods_receipts(s, po.id, world.actor)
        assert [r.id for r in receipts] == [newer.receipt_id, older.receipt_id]
        assert [len(r.lines) for r in receipts] == [1, 1]

        with pytest.raises(NotFound):
            list_goods_receipts(s, po.id, world.other_actor)
        with pytest.raises(NotFound):
            get_goods_receipt(s, newer.receipt_id, world.other_actor)


def test_receipt_number_format():
    number = allocate_receipt_number()

    prefix, stamp, suffix = number.split("-")
    assert prefix == "GR"
    assert stamp.isalnum() and stamp == stamp.upper()
    assert len(suffix) == 4
    assert allocate_receipt_number() != number
