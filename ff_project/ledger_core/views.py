import datetime
import functools
import json
import logging

from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.http import JsonResponse
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from .exceptions import NotFoundError
from .services.journal import create_manual_journal_entry, post_manual_entry
from .services.payments import (
    allocate_excess_payment,
    delete_payment,
    open_invoices,
    process_invoice_payment,
    update_payment,
)
from .services.reconciler import list_party_transactions
from .services.recorder import record_transaction
from .services.shipments import create_shipment, update_invoice, update_shipment

logger = logging.getLogger(__name__)


# ---------- Error mapping ----------
def _messages(exc):
    return "; ".join(exc.messages) if hasattr(exc, "messages") else str(exc)


def json_errors(view):
    """ValidationError → 400, NotFound → 404, anything else → 500 (detail logged only)."""

    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except ValidationError as exc:
            return JsonResponse({"success": False, "error": _messages(exc)}, status=400)
        except (NotFoundError, ObjectDoesNotExist) as exc:
            return JsonResponse({"success": False, "error": str(exc)}, status=404)
        except Exception:
            logger.exception("Unhandled error in %s", view.__name__)
            return JsonResponse({"success": False, "error": "Internal server error"}, status=500)

    return wrapper


# ---------- Request parsing ----------
def _body(request):
    try:
        data = json.loads(request.body or b"{}")
    except ValueError:
        raise ValidationError("Request body must be JSON")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _datetime(value, name):
    """ISO date or datetime → aware datetime (None passes through)."""
    if value in (None, ""):
        return None
    parsed = None
    if isinstance(value, str):
        try:
            # well-formed but impossible dates (2024-02-30) raise ValueError
            parsed = parse_datetime(value)
            if parsed is None:
                day = parse_date(value)
                if day is not None:
                    parsed = datetime.datetime.combine(day, datetime.time.min)
        except ValueError:
            raise ValidationError(f"{name} is not a valid date")
    if parsed is None:
        raise ValidationError(f"{name} must be an ISO date")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def _date(value, name):
    if not value:
        return None
    try:
        day = parse_date(value)
    except ValueError:
        raise ValidationError(f"{name} is not a valid date")
    if day is None:
        raise ValidationError(f"{name} must be YYYY-MM-DD")
    return day


def _int(value, name, default):
    if value in (None, ""):
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


# ---------- Serialisation ----------
def _money(value):
    return None if value is None else str(value)


def _iso(value):
    return value.isoformat() if value else None


def transaction_json(txn):
    return {
        "id": txn.pk,
        "type": txn.type,
        "amount": _money(txn.amount),
        "description": txn.description,
        "reference": txn.reference,
        "invoice": txn.invoice,
        "created_at": _iso(txn.created_at),
        "voucher_date": _iso(getattr(txn, "voucher_date", None)),
        "previous_balance": _money(txn.previous_balance),
        "new_balance": _money(txn.new_balance),
    }


def invoice_json(invoice):
    if invoice is None:
        return None
    return {
        "id": invoice.pk,
        "invoice_number": invoice.invoice_number,
        "profile": invoice.profile,
        "total_amount": _money(invoice.total_amount),
        "status": invoice.status,
    }


def shipment_json(result):
    shipment = result.shipment
    return {
        "success": True,
        "shipment": {
            "id": shipment.pk,
            "tracking_id": shipment.tracking_id,
            "awb_number": shipment.awb_number,
            "shipment_date": _iso(shipment.shipment_date),
            "invoice_number": shipment.invoice_number,
            "vendor_invoice_number": shipment.vendor_invoice_number,
            "original_price": _money(shipment.original_price),
            "discount_amount": _money(shipment.discount_amount),
            "customer_total_cost": _money(shipment.customer_total_cost),
            "vendor_total_cost": _money(shipment.vendor_total_cost),
            "invoice_status": shipment.invoice_status,
        },
        "customer_invoice": invoice_json(result.customer_invoice),
        "vendor_invoice": invoice_json(result.vendor_invoice),
        "ledger": result.outcome.as_dict(),
    }


def journal_json(je):
    return {
        "id": je.pk,
        "entry_number": je.entry_number,
        "date": _iso(je.date),
        "description": je.description,
        "reference": je.reference,
        "total_debit": _money(je.total_debit),
        "total_credit": _money(je.total_credit),
        "is_posted": je.is_posted,
        "lines": [
            {
                "account": line.account.code,
                "debit_amount": _money(line.debit_amount),
                "credit_amount": _money(line.credit_amount),
                "description": line.description,
            }
            for line in je.lines.select_related("account").order_by("id")
        ],
    }


# ---------- Party transactions ----------
def _party_transactions(request, kind, party_id):
    if request.method == "GET":
        params = request.GET
        page = list_party_transactions(
            kind,
            party_id,
            page=params.get("page", 1),
            limit=_int(params.get("limit"), "limit", None),
            search=params.get("search") or None,
            sort_field=params.get("sort_field", "voucher_date"),
            sort_order=params.get("sort_order", "asc"),
            from_date=_date(params.get("from_date"), "from_date"),
            to_date=_date(params.get("to_date"), "to_date"),
        )
        return JsonResponse({
            "success": True,
            "transactions": [transaction_json(t) for t in page.transactions],
            "current_balance": _money(page.current_balance),
            "page": page.page,
            "total_pages": page.total_pages,
            "total": page.total,
        })

    data = _body(request)
    if data.get("amount") in (None, ""):
        raise ValidationError("amount is required")
    change = record_transaction(
        kind,
        party_id,
        data.get("type"),
        data["amount"],
        data.get("description", ""),
        reference=data.get("reference") or None,
        invoice=data.get("invoice") or None,
        created_at=_datetime(data.get("date"), "date"),
    )
    return JsonResponse({
        "success": True,
        "transaction": transaction_json(change.transaction),
        "previous_balance": _money(change.previous_balance),
        "new_balance": _money(change.new_balance),
    }, status=201)


@csrf_exempt
@require_http_methods(["GET", "POST"])
@json_errors
def customer_transactions_view(request, customer_id):
    return _party_transactions(request, "customer", customer_id)


@csrf_exempt
@require_http_methods(["GET", "POST"])
@json_errors
def vendor_transactions_view(request, vendor_id):
    return _party_transactions(request, "vendor", vendor_id)


# ---------- Shipments ----------
@csrf_exempt
@require_http_methods(["POST"])
@json_errors
def create_shipment_view(request):
    data = _body(request)
    if "shipment_date" in data:
        data["shipment_date"] = _datetime(data["shipment_date"], "shipment_date")
    result = create_shipment(data)
    return JsonResponse(shipment_json(result), status=201)


@csrf_exempt
@require_http_methods(["PATCH"])
@json_errors
def update_shipment_view(request, shipment_id):
    changes = _body(request)
    if "shipment_date" in changes:
        changes["shipment_date"] = _datetime(changes["shipment_date"], "shipment_date")
    result = update_shipment(shipment_id, changes)
    return JsonResponse(shipment_json(result))


# ---------- Payments ----------
def payment_json(result):
    invoice = result.invoice
    return {
        "success": True,
        "payment": {
            "id": result.payment.pk,
            "amount": _money(result.payment.amount),
            "category": result.payment.category,
        },
        "invoice": None if invoice is None else {
            "invoice_number": invoice.invoice_number,
            "status": result.status,
            "total_paid": _money(result.total_paid),
            "remaining_amount": _money(result.remaining_amount),
            "total_amount": _money(invoice.total_amount),
        },
        "ledger": result.outcome.as_dict(),
    }


@csrf_exempt
@require_http_methods(["POST"])
@json_errors
def process_payment_view(request):
    data = _body(request)
    for field in ("invoice_number", "amount", "payment_type"):
        if not data.get(field):
            raise ValidationError("Invoice number, payment amount, and payment type are required")
    result = process_invoice_payment(
        data["invoice_number"],
        data["amount"],
        data["payment_type"],
        mode=data.get("mode") or "CASH",
        reference=data.get("reference") or None,
        description=data.get("description") or None,
        date=_datetime(data.get("date"), "date"),
    )
    return JsonResponse(payment_json(result))


@csrf_exempt
@require_http_methods(["PATCH", "DELETE"])
@json_errors
def payment_view(request, payment_id):
    if request.method == "DELETE":
        return JsonResponse(payment_json(delete_payment(payment_id)))
    data = _body(request)
    if data.get("amount") in (None, ""):
        raise ValidationError("amount is required")
    result = update_payment(
        payment_id, data["amount"], update_journal=bool(data.get("update_journal", True))
    )
    return JsonResponse(payment_json(result))


@csrf_exempt
@require_http_methods(["GET", "POST"])
@json_errors
def allocate_payment_view(request):
    if request.method == "GET":
        kind = request.GET.get("party_type")
        if kind not in ("customer", "vendor"):
            raise ValidationError("party_type must be customer or vendor")
        party_id = _int(request.GET.get("party_id"), "party_id", None)
        if party_id is None:
            raise ValidationError("party_id is required")
        return JsonResponse({
            "success": True,
            "invoices": [
                dict(invoice_json(invoice), remaining_amount=_money(remaining))
                for invoice, remaining in open_invoices(kind, party_id)
            ],
        })

    data = _body(request)
    if not data.get("invoice_number"):
        raise ValidationError("invoice_number is required")
    targets = data.get("invoice_numbers")
    if targets is not None and not isinstance(targets, list):
        raise ValidationError("invoice_numbers must be a list")
    result = allocate_excess_payment(
        data["invoice_number"],
        amount=data.get("amount") or None,
        invoice_numbers=targets,
        date=_datetime(data.get("date"), "date"),
    )
    return JsonResponse({
        "success": True,
        "allocated": _money(result.allocated),
        "allocations": [
            {"invoice_number": number, "amount": _money(amount)}
            for number, amount in result.allocations
        ],
        "ledger": result.outcome.as_dict(),
    })


# ---------- Invoices ----------
@csrf_exempt
@require_http_methods(["PATCH"])
@json_errors
def update_invoice_view(request, invoice_id):
    changes = _body(request)
    if "invoice_date" in changes:
        changes["invoice_date"] = _datetime(changes["invoice_date"], "invoice_date")
    result = update_invoice(invoice_id, changes)
    return JsonResponse({
        "success": True,
        "invoice": invoice_json(result.invoice),
        "ledger": result.outcome.as_dict(),
    })


# ---------- Journal entries ----------
@csrf_exempt
@require_http_methods(["POST"])
@json_errors
def create_journal_entry_view(request):
    data = _body(request)
    je = create_manual_journal_entry(
        _datetime(data.get("date"), "date"),
        data.get("description"),
        data.get("reference"),
        data.get("lines"),
    )
    return JsonResponse({"success": True, "entry": journal_json(je)}, status=201)


@csrf_exempt
@require_http_methods(["POST"])
@json_errors
def post_journal_entry_view(request, entry_id):
    je = post_manual_entry(entry_id)
    return JsonResponse({"success": True, "entry": journal_json(je)})
