# run.py
import logging
import os
from ideaboard import create_app

app = create_app()

# Configure logging to include line number
logging.basicConfig(
    format='%(asctime)s [%(levelname)s] %(filename)s:%(lineno)d - %(message)s',
    level=logging.INFO
)


if __name__ == "__main__":
    port = int(os.environ.get('PORT', 5001))
    app.run(host="0.0.0.0", port=port, debug=True)
