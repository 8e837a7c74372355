from .owner import Owner
from .review_item import ReviewItem, ReviewItemCreate, Stage, PageProgress

__all__ = ['Owner', 'ReviewItem', 'ReviewItemCreate', 'Stage', 'PageProgress']
