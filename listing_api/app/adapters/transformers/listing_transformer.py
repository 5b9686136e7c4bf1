"""
Entity Store 행(ListableItem)을 색인 단위인 SearchDocument로 변환하는 TransformPort 구현체.
"""

from __future__ import annotations

from listing_api.app.domain.models import ListableItem, SearchDocument
from listing_api.app.domain.ports import TransformPort
from listing_api.app.domain.utils import join_searchable


class ListingTransformer(TransformPort):

    def transform(self, item: ListableItem) -> SearchDocument:
        """
        ListableItem을 SearchDocument로 변환하는 메서드.
        - 매핑 규칙:
            slug(없으면 slugify(name)) -> object_id
            is_featured -> featured
            is_hot -> hot
            텍스트/배열/FAQ 전체 -> searchable_blob (공백 연결)
        Args:
            item: ListableItem
        Returns:
            SearchDocument
        """
        object_id = item.object_id
        return SearchDocument(
            object_id=object_id,
            slug=item.slug or object_id,
            name=item.name,
            description=item.description,
            short_description=item.short_description,
            category=item.category,
            tags=list(item.tags),
            pricing_type=item.pricing_type,
            access_type=list(item.access_type),
            searchable_blob=self.searchable_blob(item),
            featured=item.is_featured,
            hot=item.is_hot,
            likes=item.likes,
            website=item.website,
            logo_url=item.logo_url,
        )

    @staticmethod
    def searchable_blob(item: ListableItem) -> str:
        """넓은 재현율을 위해 검색 대상이 될 수 있는 모든 텍스트를 한 줄로 합친다."""
        faq_text = [part for faq in item.faqs for part in (faq.question, faq.answer)]
        return join_searchable([
            item.name,
            item.description,
            item.short_description,
            item.category,
            item.tags,
            item.key_features,
            item.use_cases,
            item.audience,
            item.access_type,
            item.pricing_type,
            faq_text,
        ])
