#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: const.py

from ._internal import get_abs_path

DEFAULT_CONFIG_INI = get_abs_path("../config.ini")
CONFIG_INI_ENV = "AUTOENROLL_CONFIG_INI"
ERROR_LOG_DIR = get_abs_path("../log/error/")
REQUEST_LOG_DIR = get_abs_path("../log/request/")

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_SCHOOL_ID = "tyust"
DEFAULT_GNMKDM = "N253512"


class JwxtURL(object):
    """
    Path templates of the ZhengFang "jwglxt" self-service enrollment module,
    relative to ``{protocol}://{domain}``.
    """
    Index = "/jwglxt/xsxk/zzxkyzb_cxZzxkYzbIndex.html?gnmkdm={gnmkdm}&layout=default&su={domain}"
    Display = "/jwglxt/xsxk/zzxkyzb_cxZzxkYzbDisplay.html?gnmkdm={gnmkdm}"
    PartDisplay = "/jwglxt/xsxk/zzxkyzb_cxZzxkYzbPartDisplay.html?gnmkdm={gnmkdm}"
    ChoosedDisplay = "/jwglxt/xsxk/zzxkyzb_cxZzxkYzbChoosedDisplay.html?gnmkdm={gnmkdm}"
    JxbWithKch = "/jwglxt/xsxk/zzxkyzbjk_cxJxbWithKchZzxkYzb.html?gnmkdm={gnmkdm}"
    Enroll = "/jwglxt/xsxk/zzxkyzbjk_xkBcZyZzxkYzb.html?gnmkdm={gnmkdm}"


# id -> (name, domain, protocol)
BUILTIN_SCHOOLS = {
    "tyust": ("太原科技大学", "newjwc.tyust.edu.cn", "https"),
    "zjut": ("浙江工业大学", "www.gdjw.zjut.edu.cn", "http"),
}

# kklxdm, xkkz_id, njdm_id, zyh_id of the default school's main track
FALLBACK_CATEGORY = ("01", "3EC380169F7E8633E0636F1310AC7E15", "2024", "088")

# hidden tokens advertising the portal's own default category
FIRST_CATEGORY_TOKENS = (
    ("kklxdm", "firstKklxdm"),
    ("xkkz_id", "firstXkkzId"),
    ("njdm_id", "firstNjdmId"),
    ("zyh_id", "firstZyhId"),
)

# kklxdm -> (rwlx, xklc)
DERIVED_FIELDS_TABLE = {
    "01": ("1", "2"),
    "10": ("2", "4"),
    "05": ("2", "3"),
}
DERIVED_FIELDS_DEFAULT = ("1", "2")

MAKEUP_CATEGORY = "05"

REQUIRED_FIELDS = (
    "xqh_id", "jg_id", "zyh_id", "zyfx_id", "njdm_id", "bh_id", "xbm",
    "xslbdm", "mzm", "xz", "ccdm", "xsbj", "xkxnm", "xkxqm",
)

DYNAMIC_FIELDS = (
    "xqh_id", "jg_id", "njdm_id_1", "zyh_id_1", "gnjkxdnj", "zyh_id",
    "zyfx_id", "njdm_id", "bh_id", "bjgkczxbbjwcx", "xbm", "xslbdm", "mzm",
    "xz", "ccdm", "xsbj", "sfkknj", "sfkkzy", "kzybkxy", "sfznkx", "zdkxms",
    "sfkxq", "sfkcfx", "kkbk", "kkbkdj", "bklbkcj", "sfkgbcx", "sfrxtgkcxd",
    "tykczgxdcs", "xkxnm", "xkxqm",
)

# fields defaulted to "0" when the portal does not advertise them
ZERO_DEFAULT_FIELDS = (
    "gnjkxdnj", "sfkknj", "sfkkzy", "kzybkxy", "sfznkx", "zdkxms", "sfkxq",
    "kkbk", "kkbkdj", "bklbkcj",
)

# fields that are "1" on the makeup track and "0" elsewhere
MAKEUP_FLAG_FIELDS = ("bjgkczxbbjwcx", "sfkcfx", "sfkgbcx", "sfrxtgkcxd")

BASE_FIELD_DEFAULTS = (
    ("xkly", "0"),
    ("bklx_id", "0"),
    ("sfkkjyxdxnxq", "0"),
    ("kzkcgs", "0"),
)

CATALOG_EXTRA_FIELDS = (
    ("bbhzxjxb", "0"),
    ("rlkz", "0"),
    ("xkzgbj", "0"),
    ("jxbzb", ""),
)

# sent with the catalog fields when looking up the classes of one course
DETAILS_EXTRA_FIELDS = (
    ("txbsfrl", "0"),
    ("cdrlkz", "0"),
    ("rlzlkz", "1"),
    ("jxbzcxskg", "0"),
    ("xkxskcgskg", "0"),
    ("cxbj", "0"),
    ("fxbj", "0"),
)

SELECTED_LIST_FIELDS = (
    "jg_id", "zyh_id", "njdm_id", "zyfx_id", "bh_id", "xz", "ccdm",
    "xqh_id", "xkxnm", "xkxqm", "xkly",
)

FIRST_PAGE_CURSOR = (0, 10)
PAGE_SIZE = 10

SESSION_EXPIRED_STATUS = (901, 910)
LOGIN_PAGE_MARKERS = ("用户登录", "登 录", "统一身份认证")
