# run.py

from blog_api import create_app
from config import Config  # Configをインポート

# Flaskアプリケーションのインスタンスを作成
app = create_app(Config)

if __name__ == '__main__':
    # host='0.0.0.0' で全てのネットワークインターフェースからの接続を受け付けます。
    app.run(host='0.0.0.0', port=5001, debug=True)
