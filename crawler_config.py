"""
Configuration settings for the NHS Jobs crawler.
"""

# Site root - relative job links and JSON API urls are resolved against this
BASE_URL = "https://www.jobs.nhs.uk"

# Search results page used when no explicit start URLs are given
SEARCH_PATH = "/candidate/search/results"

# Path fragment shared by every job detail page
JOB_ADVERT_PATH = "/candidate/jobadvert/"

# Headers sent with every request
DEFAULT_HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36',
    'Accept-Language': 'en-GB,en;q=0.9',
}

# Extra headers asking the search page for its JSON representation
JSON_HEADERS = {
    'Accept': 'application/json',
    'X-Requested-With': 'XMLHttpRequest',
}

# Number of job records to collect (None or a non-finite value = unlimited)
RESULTS_WANTED = 100

# Maximum number of listing pages to visit per start URL
MAX_PAGES = 50

# Visit each job's detail page (True) or save the listing summary only (False)
COLLECT_DETAILS = True

# Number of requests processed at the same time
MAX_CONCURRENCY = 6

# Number of retries for failed requests
MAX_RETRIES = 3

# Retry delay in seconds
RETRY_DELAY = 2

# Per-request timeout in seconds
REQUEST_TIMEOUT = 30

# Browser fingerprint curl_cffi impersonates
IMPERSONATE = "chrome120"

# Default JSONL output file
OUTPUT_FILE = "output/jobs.jsonl"
