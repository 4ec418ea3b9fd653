# run.py
import os
from dotenv import load_dotenv

# run.py와 같은 디렉터리의 .env 파일을 로드합니다.
basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(dotenv_path=os.path.join(basedir, '.env'))

from pawfinds import create_app

app = create_app()

if __name__ == '__main__':
    host = os.getenv('FLASK_RUN_HOST', '127.0.0.1')
    port = int(os.getenv('FLASK_RUN_PORT', 5000))
    debug = app.config.get('DEBUG', False)
    # 디버그 리로더는 프로세스를 두 번 띄우므로 이벤트 리스너도 두 번 시작됨
    app.run(host=host, port=port, debug=debug, use_reloader=False)
