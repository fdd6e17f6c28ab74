"""
Run script for the Dailybook application
"""
from dailybook.web import app
from dailybook.core.config import settings

if __name__ == '__main__':
    app.run(debug=settings.DEBUG, port=5000, host='0.0.0.0')
