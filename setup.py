#!/usr/bin/env python3
"""
nxipc 安装脚本
==============

IPC服务分发表恢复工具的安装配置。
"""

from setuptools import setup, find_packages
import os

# 读取依赖
def read_requirements():
    here = os.path.abspath(os.path.dirname(__file__))
    try:
        with open(os.path.join(here, 'requirements.txt'), 'r', encoding='utf-8') as f:
            requirements = []
            for line in f:
                line = line.strip()
                if line and not line.startswith('#'):
                    requirements.append(line)
            return requirements
    except FileNotFoundError:
        return []

setup(
    name="nxipc",
    version="1.0.0",
    author="",
    author_email="",
    description="IPC服务分发表恢复工具 - 定位服务对象vtable与服务表",

    # 包配置
    package_dir={"": "src"},
    packages=find_packages(where="src"),

    # 依赖
    install_requires=read_requirements(),
    extras_require={
        "test": ["pytest"],
    },

    # Python版本要求
    python_requires=">=3.8",

    # 分类器
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Disassemblers",
        "Topic :: Security",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Operating System :: POSIX :: Linux",
        "Operating System :: MacOS",
    ],

    # 项目关键词
    keywords="ipc, vtable, rtti, relocation, reverse engineering, binary analysis",

    # 包含的非Python文件
    include_package_data=True,

    zip_safe=False,
)
