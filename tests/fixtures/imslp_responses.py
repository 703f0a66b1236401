# ABOUTME: Canned IMSLP MediaWiki API response fixtures for testing.
# ABOUTME: Provides search, rendered work page and imageinfo responses.

WORK_PAGE_TITLE = "Piano Sonata No.14, Op.27 No.2 (Beethoven, Ludwig van)"

SEARCH_RESPONSE = {
    "batchcomplete": "",
    "query": {
        "searchinfo": {"totalhits": 2},
        "search": [
            {"ns": 0, "title": "Category:Beethoven, Ludwig van", "pageid": 11},
            {"ns": 0, "title": WORK_PAGE_TITLE, "pageid": 1458},
        ],
    },
}

WORK_PAGE_HTML = """
<div class="we">
  <a href="/images/c/cd/PMLP01458-Beethoven_Op27No2_arr_guitar.pdf">Guitar arrangement</a>
  <a href="/images/e/ef/PMLP01458-Beethoven_Sonata_14_Breitkopf.pdf">Breitkopf &amp; Härtel</a>
  <a href="/images/a/ab/PMLP01458-Beethoven_Sonata_14_Henle.pdf">Henle</a>
  <a href="/images/a/ab/PMLP01458-Beethoven_Sonata_14_Henle.pdf">Henle (mirror)</a>
  <a href="/wiki/Category:Beethoven,_Ludwig_van">Composer</a>
</div>
"""

PARSE_RESPONSE = {"parse": {"title": WORK_PAGE_TITLE, "text": {"*": WORK_PAGE_HTML}}}

IMAGEINFO_RESPONSE = {
    "query": {
        "pages": {
            "98765": {
                "title": "File:PMLP01458-Beethoven_Sonata_14_Henle.pdf",
                "imageinfo": [
                    {"url": "//imslp.org/images/a/ab/PMLP01458-Beethoven_Sonata_14_Henle.pdf"}
                ],
            }
        }
    }
}
