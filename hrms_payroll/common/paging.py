# hrms_payroll/common/paging.py
from flask import request

DEFAULT_PAGE = 1
DEFAULT_SIZE = 20
MAX_SIZE = 200

def page_limit():
    try:
        page = max(int(request.args.get("page", DEFAULT_PAGE)), 1)
    except ValueError:
        page = DEFAULT_PAGE
    try:
        size = int(request.args.get("size", DEFAULT_SIZE))
        size = max(1, min(size, MAX_SIZE))
    except ValueError:
        size = DEFAULT_SIZE
    return page, size

def paginate(query, row):
    """Apply ?page=&size= to `query`; returns (items, meta) with items shaped by `row`."""
    page, size = page_limit()
    total = query.order_by(None).count()
    items = query.offset((page - 1) * size).limit(size).all()
    return [row(x) for x in items], {"page": page, "size": size, "total": total}

def paginate_list(rows, row):
    """Same as paginate() for an already-loaded list."""
    page, size = page_limit()
    chunk = rows[(page - 1) * size: page * size]
    return [row(x) for x in chunk], {"page": page, "size": size, "total": len(rows)}
