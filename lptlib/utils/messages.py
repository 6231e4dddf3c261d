# 
# Author(s):
# Matteo Spallanzani <spmatteo@iis.ee.ethz.ch>
# 
# Copyright (c) 2020-2022 ETH Zurich and University of Bologna.
# 
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
# 
# http://www.apache.org/licenses/LICENSE-2.0
# 
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# 

from functools import partial


_LPT_LOG_HEADER = "[LPT] "
_LPT_WNG_HEADER = "[LPT warning] "
_LPT_ERR_HEADER = "[LPT error] "


def lpt_msg_header(header: str, obj_name: str = "", node_name: str = "") -> str:
    """Create a header for log, warning or error messages.

    Arguments:
        obj_name: the (optional) name of the function, object class or
            rewriting rule that is triggering the message.
        node_name: the (optional) name of the graph operation that the
            message is about.

    """
    source = obj_name + (f" ({node_name})" if node_name != "" else "")
    return header + (f"{source}: " if source != "" else "")


lpt_log_header = partial(lpt_msg_header, header=_LPT_LOG_HEADER)
lpt_wng_header = partial(lpt_msg_header, header=_LPT_WNG_HEADER)
lpt_err_header = partial(lpt_msg_header, header=_LPT_ERR_HEADER)
