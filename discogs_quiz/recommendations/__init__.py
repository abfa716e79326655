"""
Recommendation engine: turns quiz answers and a collection snapshot into one
explainable album pick.

Modules
-------
criteria  : YearRange / FilterCriteria + to_filter_criteria() — fixed lookup
            tables from quiz answers to matching keywords.
matching  : classify_format() + the four per-item predicates.
filtering : filter_collection() + broaden_filters() → BroadenResult.
scorer    : ItemScore + score_item() — additive points with reasons.
ranker    : rank_items() + recommend() — ordering and close-match pick.
browse    : search_collection() + sort_collection() for the collection view.

Everything here is pure: no network, no DB, no global randomness.
"""
