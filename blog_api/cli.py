# blog_api/cli.py

import random

import click
from flask.cli import with_appcontext

from blog_api.extensions import db
from blog_api.forms import email_taken
from blog_api.models import User, Category, Post, Comment


WORDS = (
    'lorem', 'ipsum', 'dolor', 'sit', 'amet', 'consectetur', 'adipiscing', 'elit',
    'sed', 'do', 'eiusmod', 'tempor', 'incididunt', 'labore', 'dolore', 'magna',
)


def _sentence(rng, words=8):
    text = ' '.join(rng.choice(WORDS) for _ in range(words))
    return text.capitalize() + '.'


def _make_user(rng, index):
    user = User(name=f"Demo User {index}", email=f"demo{index}.{rng.randrange(10 ** 6)}@example.com")
    user.set_password('password123')
    db.session.add(user)
    return user


def _make_category(rng):
    category = Category(name=' '.join(rng.choice(WORDS) for _ in range(2)).title())
    db.session.add(category)
    return category


def _make_comment(rng, owner, index):
    comment = Comment(content=_sentence(rng), user=_make_user(rng, f"c{index}"))
    comment.commentable = owner
    db.session.add(comment)
    return comment


@click.group()
def seed():
    """データベースの初期化とデモデータ投入コマンド."""
    pass


@seed.command("reset-db")
@click.option('--drop', is_flag=True, help='既存のテーブルを削除してから作成します。')
@with_appcontext
def reset_db(drop):
    """データベーステーブルを作成します。"""
    if drop:
        click.echo("既存のテーブルを削除中...")
        db.drop_all()
    click.echo("データベーステーブルを作成中...")
    db.create_all()
    click.echo("データベースの作成が完了しました。")


@seed.command("demo")
@click.option('--posts', default=10, show_default=True, help='作成する投稿数 (各3コメント).')
@click.option('--categories', default=5, show_default=True, help='追加で作成するカテゴリ数 (各2コメント).')
@click.option('--seed-value', type=int, default=None, help='乱数シード (再現用).')
@with_appcontext
def demo(posts, categories, seed_value):
    """投稿とカテゴリ、それぞれに付くポリモーフィックなコメントを作成します。"""
    rng = random.Random(seed_value)
    try:
        for i in range(posts):
            post = Post(
                title=_sentence(rng, 4).rstrip('.'),
                content=' '.join(_sentence(rng) for _ in range(3)),
                user=_make_user(rng, f"p{i}"),
                category=_make_category(rng),
            )
            db.session.add(post)
            db.session.flush()
            for j in range(3):
                _make_comment(rng, post, f"p{i}-{j}")

        for i in range(categories):
            category = _make_category(rng)
            db.session.flush()
            for j in range(2):
                _make_comment(rng, category, f"k{i}-{j}")

        db.session.commit()
        click.echo(f"{posts} 件の投稿と {categories} 件のカテゴリ (コメント付き) を作成しました。")
    except Exception as e:
        db.session.rollback()
        click.echo(f"デモデータの作成中にエラーが発生しました: {e}", err=True)
        click.echo("データベースのロールバックが実行されました。", err=True)
        raise click.Abort()


@seed.command("user")
@click.option('--name', default='admin', help='ユーザー名.')
@click.option('--email', default='admin@example.com', help='メールアドレス.')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True,
              help='パスワード (8文字以上).')
@with_appcontext
def create_user(name, email, password):
    """API にログインできるユーザーを作成します。"""
    if len(password) < 8:
        click.echo("パスワードは8文字以上にしてください。", err=True)
        raise click.Abort()

    if email_taken(email):
        click.echo(f"ユーザー '{email}' は既に存在します。作成をスキップします。", err=True)
        return

    user = User(name=name, email=email)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    click.echo(f"ユーザー '{name}' (メール: '{email}') が正常に作成されました。")
