"""
AdCreative 引擎 - 多格式广告创意排版、校验与导出核心模块

模块结构：
- config/      运行期配置与格式目录加载
- models/      数据模型定义
- layout/      裁切计算 / 文字排版 / 绘制指令
- render/      图片解码 / 位图合成 / HTML5 合成
- validation/  平台约束校验
- pipeline/    批量导出编排、打包与 CSV 导入清单
"""

__version__ = "0.1.0"
