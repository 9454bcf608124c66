# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

__version__ = "0.3.0"
