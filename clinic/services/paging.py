from typing import List, Tuple


def paginate(qs, page: int=1, page_size: int=20) -> Tuple[List, int]:
    """Slice a queryset into one page; returns ``(items, total)``."""
    total = qs.count()
    page = max(1, int(page or 1))
    page_size = min(100, max(1, int(page_size or 20)))
    start = (page - 1) * page_size
    return list(qs[start:start + page_size]), total
