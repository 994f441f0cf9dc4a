"""courtqueue: 分组撮合队列与ELO评分服务"""

__version__ = '0.1.0'
