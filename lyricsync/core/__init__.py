"""核心模块 - 接口定义和异常"""
