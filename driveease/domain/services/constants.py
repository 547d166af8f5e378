
# Recommendation defaults
DEFAULT_RECOMMENDATION_LIMIT = 4
TOP_RATED_THRESHOLD = 4.5  # rating from which a car is tagged/treated as top rated

# Personalized scoring bonuses (added to the base rating, first match only)
BONUS_FAVORITE = 5
BONUS_PREFERRED = 3
BONUS_BOOKED = 2

# Reasons shown to the user
REASON_FAVORITE = "From your favorites"
REASON_PREFERRED = "Matches your preferences"
REASON_BOOKED = "Based on your bookings"
REASON_TOP_RATED = "Top rated"
REASON_FILL = "Highly rated"

# Recommendation tags
TAG_TOP_RATED = "top-rated"
TAG_PREFERRED = "preferred"
TAG_BOOKED_BEFORE = "booked-before"
TAG_FEATURED = "featured"
TAG_DIVERSE = "diverse"

# Availability tool
INTENT_SALE = "sale"
INTENT_RENT = "rent"
LISTING_TYPES_FOR_INTENT = {
    INTENT_SALE: ("Sale", "Both"),
    INTENT_RENT: ("Rent", "Both"),
}
AVAILABILITY_MAX_RESULTS = 3
