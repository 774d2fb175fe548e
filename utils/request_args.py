# utils/request_args.py
from datetime import datetime

def parse_pagination(args, default_limit=25):
    """
    Reads `page` and `limit` from request args. A limit of 0 or less returns everything.

    Raises:
        ValueError: If either value is not an integer.
    """
    try:
        page = int(args.get("page", 1))
        limit = int(args.get("limit", default_limit))
    except (ValueError, TypeError):
        raise ValueError("Invalid page or limit parameter. Must be integers.")
    return max(page, 1), limit

def parse_date_arg(args, name):
    value = args.get(name)
    if not value:
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        raise ValueError(f"Invalid {name} '{value}'. Expected YYYY-MM-DD.")

def paginated_response(data, total, page, limit):
    return {
        "data": data,
        "total": total,
        "page": page,
        "limit": limit if limit > 0 else total,
        "totalPages": (total + limit - 1) // limit if limit > 0 else 1
    }
