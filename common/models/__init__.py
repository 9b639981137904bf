from common.models.pagination import Page

__all__ = ["Page"]
