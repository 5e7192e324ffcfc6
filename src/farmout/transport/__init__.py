"""Remote transport: ssh master connections and host probing"""
