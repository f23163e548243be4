"""
Helpers shared by the request serializers.

Free text is stored as plain text: every tag is stripped and the
entities bleach escapes on the way out are turned back into characters,
so "Amoxicillin & Clavulanate" is stored and looked up exactly as typed.
"""
import html

import bleach
from rest_framework import serializers


def plain_text(value) -> str:
    cleaned = bleach.clean((value or '').strip(), tags=set(), attributes={}, strip=True)
    return html.unescape(cleaned).strip()


class PageQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=100, default=20)


def pagination(query: PageQuerySerializer, total: int) -> dict:
    return {
        'total': total,
        'page': query.validated_data['page'],
        'pageSize': query.validated_data['pageSize'],
    }
