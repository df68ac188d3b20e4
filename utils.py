_FA_DIGITS = str.maketrans("0123456789", "۰۱۲۳۴۵۶۷۸۹")


def to_farsi_digits(value):
    return str(value).translate(_FA_DIGITS)


def format_rating(value):
    try:
        rating = float(value or 0)
    except (TypeError, ValueError):
        return ""
    if rating <= 0:
        return ""
    return f"{rating:.1f}"


def format_play_count(value):
    try:
        count = int(value or 0)
    except (TypeError, ValueError):
        return "0"
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M"
    if count >= 1_000:
        return f"{count / 1_000:.1f}K"
    return str(count)


def item_badges(item):
    badges = []
    if item.is_free:
        badges.append("رایگان")
    if item.is_featured:
        badges.append("ویژه")
    return badges


def format_item_line(index, item, farsi_digits=False):
    """One text row for an item: position, title, author, rating and badges."""
    position = to_farsi_digits(index) if farsi_digits else str(index)
    parts = [f"{position}. {item.display_title()}"]
    author = item.display_author()
    if author:
        parts.append(author)
    rating = format_rating(item.avg_rating)
    if rating:
        parts.append(f"★ {rating}")
    badges = item_badges(item)
    if badges:
        parts.append(" ".join(f"[{b}]" for b in badges))
    return " | ".join(parts)
