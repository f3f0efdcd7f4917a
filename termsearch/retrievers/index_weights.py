"""Field boosts sent with every index query.

Class ``name`` stays close to 1: boosting it further makes "cs2500" rank the
lab (whose name mentions "cs 2500") above the class itself.
"""

from termsearch_libs.providers.base import SearchFieldConfig

CLASS_SEARCH_CONFIG = SearchFieldConfig(
    boosts={
        "class_id": 4.0,
        "acronym": 4.0,
        "subject": 2.0,
        "desc": 1.0,
        "name": 1.1,
        "profs": 1.0,
        "crns": 1.0,
    },
    expand=True,
)

# Role and department are rarely what people type, so they stay low to avoid
# crowding out name and contact matches.
EMPLOYEE_SEARCH_CONFIG = SearchFieldConfig(
    boosts={
        "name": 2.0,
        "primary_role": 0.4,
        "primary_department": 0.4,
        "emails": 1.0,
        "phone": 1.0,
    },
    expand=True,
)
