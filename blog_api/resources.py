# blog_api/resources.py
"""
モデル → JSON 辞書への変換。

relations=True の場合だけ関連 (user, category, comments など) を埋め込みます。
一覧・詳細では埋め込み、作成・更新ではエンティティ単体を返します。
"""

from flask import request

from blog_api.services.api_response import ResourceCollection
from blog_api.utils import isoformat, format_short_timestamp


def user_resource(user, relations=False):
    data = {
        'id': user.id,
        'name': user.name,
        'email': user.email,
        'created_at': isoformat(user.created_at),
        'updated_at': isoformat(user.updated_at),
    }
    if relations:
        data['posts'] = [post_resource(post) for post in user.posts]
        data['comments'] = [comment_resource(comment) for comment in user.comments]
    return data


def category_resource(category, relations=False):
    data = {
        'id': category.id,
        'name': category.name,
        'created_at': isoformat(category.created_at),
        'updated_at': isoformat(category.updated_at),
    }
    if relations:
        data['posts'] = [post_resource(post) for post in category.posts]
        data['comments'] = [comment_resource(comment) for comment in category.comments]
    return data


def post_resource(post, relations=False):
    data = {
        'id': post.id,
        'title': post.title,
        'content': post.content,
        'user_id': post.user_id,
        'category_id': post.category_id,
        'created_at': isoformat(post.created_at),
        'updated_at': isoformat(post.updated_at),
    }
    if relations:
        data['user'] = user_resource(post.user) if post.user else None
        data['category'] = category_resource(post.category) if post.category else None
        data['comments'] = [comment_resource(comment) for comment in post.comments]
    return data


def comment_resource(comment, relations=False):
    # コメントの日時は "日.月.年 時:分"
    data = {
        'id': comment.id,
        'content': comment.content,
        'user_id': comment.user_id,
        'commentable_type': comment.commentable_type,
        'commentable_id': comment.commentable_id,
        'created_at': format_short_timestamp(comment.created_at),
        'updated_at': format_short_timestamp(comment.updated_at),
    }
    if relations:
        owner = comment.commentable
        if owner is None:
            data['commentable'] = None
        elif comment.commentable_type == 'posts':
            data['commentable'] = post_resource(owner)
        else:
            data['commentable'] = category_resource(owner)
        data['user'] = user_resource(comment.user) if comment.user else None
    return data


def collection(page, serializer, relations=True, args=None):
    """
    PageResult を現在のリクエストURLに基づく ResourceCollection に変換します。
    args を渡すと、リンクのクエリ文字列は request.args の代わりにそれで作ります。
    """
    return ResourceCollection.from_page(
        page,
        lambda item: serializer(item, relations=relations),
        path=request.base_url,
        args=request.args if args is None else args,
    )
