# ui_config.py

VIEW_GRID = "grid"
VIEW_LIST = "list"

SORT_LABELS = {
    "newest": "جدیدترین",
    "popular": "محبوب‌ترین",
    "rating": "بالاترین امتیاز",
    "title": "الفبایی",
}

# category -> label shown for the "default" sort entry
DEFAULT_SORT_LABELS = {
    "new_releases": "جدیدترین",
    "featured": "پیشنهادی",
    "popular": "محبوب‌ترین",
    "recently_played": "آخرین شنیده شده",
    "podcasts": "جدیدترین",
    "articles": "جدیدترین",
    "music_new_releases": "جدیدترین",
    "music_featured": "ویژه",
    "music_popular": "پرشنونده‌ترین",
    "continue_listening": "آخرین شنیده شده",
}

EMPTY_MESSAGES = {
    "new_releases": "کتاب جدیدی یافت نشد",
    "featured": "کتاب پیشنهادی یافت نشد",
    "popular": "کتابی یافت نشد",
    "recently_played": "هنوز کتابی گوش نداده‌اید",
    "podcasts": "پادکستی یافت نشد",
    "articles": "مقاله‌ای یافت نشد",
    "music_new_releases": "موسیقی جدیدی یافت نشد",
    "music_featured": "موسیقی ویژه‌ای یافت نشد",
    "music_popular": "موسیقی‌ای یافت نشد",
    "continue_listening": "هنوز موسیقی‌ای گوش نداده‌اید",
}

EMPTY_FALLBACK = "موردی یافت نشد"
