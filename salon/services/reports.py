"""Daily and monthly sales reports.

Only PAID sales are counted. Amounts are yen, tax included, as stored on
the sale.
"""

import calendar
from datetime import date, timedelta
from sqlalchemy import func
from salon.extensions import db
from salon.models import Sale, SaleItem, MenuCategory
from salon.models.coupon import WEEKDAY_NAMES

# Hours shown in the daily breakdown, opening to last checkout
REPORT_HOURS = range(9, 22)


def _paid_between(start, end):
    """Filters for PAID sales with ``start <= sale_date < end``."""
    return (
        Sale.payment_status == 'PAID',
        Sale.sale_date >= start,
        Sale.sale_date < end,
    )


def _average(total, count):
    # Rounded half up
    if not count:
        return 0
    return (2 * total + count) // (2 * count)


def _percent_change(current, previous):
    if not previous:
        return 0
    return round(100 * (current - previous) / previous)


def summarize(start, end):
    """Totals for PAID sales between ``start`` (inclusive) and ``end`` (exclusive)."""
    filters = _paid_between(start, end)
    count, total, discount, coupon_discount, tax = db.session.query(
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.total_amount), 0),
        func.coalesce(func.sum(Sale.discount_amount), 0),
        func.coalesce(func.sum(Sale.coupon_discount), 0),
        func.coalesce(func.sum(Sale.tax_amount), 0),
    ).filter(*filters).one()

    by_type = dict(db.session.query(
        SaleItem.item_type,
        func.sum(SaleItem.subtotal)
    ).join(Sale, SaleItem.sale_id == Sale.id).filter(*filters).group_by(SaleItem.item_type).all())

    total = int(total)
    return {
        'total_sales': total,
        'sale_count': count,
        'average_per_customer': _average(total, count),
        'total_discount': int(discount),
        'total_coupon_discount': int(coupon_discount),
        'total_tax': int(tax),
        'menu_total': int(by_type.get('MENU') or 0),
        'product_total': int(by_type.get('PRODUCT') or 0),
    }


def payment_method_breakdown(start, end):
    rows = db.session.query(
        Sale.payment_method,
        func.count(Sale.id),
        func.sum(Sale.total_amount)
    ).filter(*_paid_between(start, end)).group_by(Sale.payment_method).all()
    return {method or 'UNKNOWN': {'count': count, 'amount': int(amount or 0)}
            for method, count, amount in rows}


def category_breakdown(start, end):
    """Menu lines per category: quantity sold and amount."""
    rows = db.session.query(
        MenuCategory.name,
        func.sum(SaleItem.quantity),
        func.sum(SaleItem.subtotal)
    ).join(SaleItem, SaleItem.category_id == MenuCategory.id).join(
        Sale, SaleItem.sale_id == Sale.id
    ).filter(
        SaleItem.item_type == 'MENU',
        *_paid_between(start, end)
    ).group_by(MenuCategory.id, MenuCategory.name).order_by(MenuCategory.display_order).all()
    return {name: {'count': int(count or 0), 'amount': int(amount or 0)}
            for name, count, amount in rows}


def _daily_totals(start, end):
    rows = db.session.query(
        Sale.sale_date,
        func.count(Sale.id),
        func.sum(Sale.total_amount)
    ).filter(*_paid_between(start, end)).group_by(Sale.sale_date).all()
    return {day: (count, int(amount or 0)) for day, count, amount in rows}


def daily_report(day):
    """Report for one day with an hourly breakdown and the day's sales."""
    next_day = day + timedelta(days=1)

    hourly = {f'{hour:02d}:00': {'count': 0, 'amount': 0} for hour in REPORT_HOURS}
    sales = Sale.query.filter(*_paid_between(day, next_day)).order_by(Sale.sale_time).all()
    for sale in sales:
        bucket = hourly.get(f'{sale.sale_time[:2]}:00')
        if bucket is not None:
            bucket['count'] += 1
            bucket['amount'] += sale.total_amount

    return {
        'date': day.isoformat(),
        'summary': summarize(day, next_day),
        'payment_method_breakdown': payment_method_breakdown(day, next_day),
        'category_breakdown': category_breakdown(day, next_day),
        'hourly_breakdown': hourly,
        'sales': [{
            'id': sale.id,
            'sale_number': sale.sale_number,
            'sale_time': sale.sale_time,
            'total_amount': sale.total_amount,
            'payment_method': sale.payment_method,
            'customer_name': sale.customer_name or (sale.customer.name if sale.customer else None),
            'items_summary': ', '.join(item.item_name for item in sale.items.limit(2)),
        } for sale in sales],
    }


def _month_bounds(year, month):
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


def monthly_report(year, month):
    """Report for a calendar month, compared with the month before."""
    start, end = _month_bounds(year, month)
    prev_start, _ = _month_bounds(*((year - 1, 12) if month == 1 else (year, month - 1)))

    summary = summarize(start, end)
    previous = summarize(prev_start, start)
    summary.update({
        'prev_total_sales': previous['total_sales'],
        'prev_sale_count': previous['sale_count'],
        'prev_average_per_customer': previous['average_per_customer'],
        'sales_change': _percent_change(summary['total_sales'], previous['total_sales']),
        'count_change': _percent_change(summary['sale_count'], previous['sale_count']),
    })

    totals = _daily_totals(start, end)
    daily_data = []
    weekdays = {name: {'count': 0, 'amount': 0} for name in WEEKDAY_NAMES}
    for day_number in range(1, calendar.monthrange(year, month)[1] + 1):
        day = date(year, month, day_number)
        count, amount = totals.get(day, (0, 0))
        daily_data.append({'date': day.isoformat(), 'count': count, 'amount': amount})
        bucket = weekdays[WEEKDAY_NAMES[day.isoweekday() % 7]]
        bucket['count'] += count
        bucket['amount'] += amount

    return {
        'year': year,
        'month': month,
        'summary': summary,
        'daily_data': daily_data,
        'payment_method_breakdown': payment_method_breakdown(start, end),
        'category_breakdown': category_breakdown(start, end),
        'weekday_breakdown': weekdays,
    }
